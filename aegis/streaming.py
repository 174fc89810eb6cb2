"""Incremental answers from one primary backend, degrading to batch consensus."""

import asyncio
import contextlib
import logging
import time
from collections.abc import AsyncIterator

from aegis.backends.base import ModelBackend
from aegis.consensus import ConsensusEngine
from aegis.errors import BackendError, GenerationError
from aegis.models import Done, Failed, ModelResponse, StreamEvent, Token

logger = logging.getLogger(__name__)


class StreamingResponseAggregator:
    """Streams one backend's answer while search resolves alongside it.

    The event stream is finite and not restartable: zero or more Token
    events, then exactly one Done or Failed.
    """

    def __init__(self, backend: ModelBackend, engine: ConsensusEngine) -> None:
        self._backend = backend
        self._engine = engine

    async def stream(self, prompt: str) -> AsyncIterator[StreamEvent]:
        """Yield Token fragments, then the terminal Done or Failed event.

        If the transport fails mid-stream the partial text is dropped and the
        batch consensus answer arrives as Done(replaces_partial=True).
        Closing the generator early cancels the search task; the backend
        request itself is only abandoned, not guaranteed to be aborted.
        """
        search_task = asyncio.create_task(self._engine.gather_sources(prompt))
        fragments: list[str] = []
        start = time.monotonic()
        try:
            try:
                async for fragment in self._backend.stream([{"role": "user", "content": prompt}]):
                    fragments.append(fragment)
                    yield Token(fragment)
            except BackendError as exc:
                logger.warning(
                    "Stream from %s failed after %d fragments, switching to batch consensus: %s",
                    self._backend.name(), len(fragments), exc,
                )
                search_task.cancel()
                try:
                    response = await self._engine.generate(prompt)
                except GenerationError as gen_exc:
                    logger.error("Batch consensus after stream failure also failed: %s", gen_exc)
                    yield Failed(gen_exc)
                    return
                yield Done(response, replaces_partial=True)
                return

            sources = await search_task
            yield Done(
                ModelResponse(
                    content="".join(fragments),
                    backend=self._backend.name(),
                    model=self._backend.model_string(),
                    latency_sec=time.monotonic() - start,
                    sources=tuple(sources),
                )
            )
        finally:
            if not search_task.done():
                search_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await search_task

    async def collect(self, prompt: str) -> ModelResponse:
        """Drain the stream and return the authoritative answer.

        Raises:
            GenerationError: If both the stream and the batch fallback failed.
        """
        async for event in self.stream(prompt):
            if isinstance(event, Done):
                return event.response
            if isinstance(event, Failed):
                raise event.error
        raise RuntimeError("Stream ended without a terminal event")
