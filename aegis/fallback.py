"""Single-hop fallback: one query against a primary backend, one retry on another."""

import logging

from aegis.backends.base import Messages, ModelBackend
from aegis.errors import BackendError, CompoundFailure
from aegis.models import ModelResponse

logger = logging.getLogger(__name__)


class FallbackQueryExecutor:
    """Runs queries against a primary backend with exactly one fallback retry."""

    async def query(self, backend: ModelBackend, messages: Messages) -> ModelResponse:
        """Query one backend and tag the result with its name.

        Raises TransportError or RateLimitError from the backend unchanged.
        """
        completion = await backend.complete(messages)
        return ModelResponse(
            content=completion.content,
            backend=backend.name(),
            model=completion.model,
            latency_sec=completion.latency_sec,
            token_count=completion.total_tokens,
        )

    async def query_with_fallback(
        self,
        primary: ModelBackend,
        fallback: ModelBackend,
        messages: Messages,
    ) -> ModelResponse:
        """Query primary; on failure query fallback once.

        The chain has exactly two entries, so at most two backend calls are
        made and the fallback never falls back again.

        Raises:
            CompoundFailure: If both backends fail.
        """
        chain = (primary, fallback)
        last_error: BackendError | None = None
        for index in range(len(chain)):
            backend = chain[index]
            try:
                return await self.query(backend, messages)
            except BackendError as exc:
                last_error = exc
                if index == 0:
                    logger.warning(
                        "Backend %s failed (%s), falling back to %s",
                        primary.name(), exc, fallback.name(),
                    )
                else:
                    logger.warning("Fallback backend %s failed: %s", fallback.name(), exc)

        raise CompoundFailure(primary.name(), fallback.name()) from last_error
