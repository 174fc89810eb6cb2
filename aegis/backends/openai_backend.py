"""OpenAI-compatible backend (OpenAI, Groq, GitHub Models, xAI) via the openai SDK."""

import asyncio
import logging
import time
from collections.abc import AsyncIterator

import openai
from openai import AsyncOpenAI

from config.config_loader import BackendConfig
from aegis.backends.base import Messages, ModelBackend, require_api_key
from aegis.errors import RateLimitError, TransportError
from aegis.models import Completion

logger = logging.getLogger(__name__)


class OpenAIBackend(ModelBackend):
    """Chat-completions backend; base_url selects the OpenAI-compatible host."""

    def __init__(self, config: BackendConfig) -> None:
        super().__init__(config)
        api_key = require_api_key(config)
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def _translate(self, exc: Exception) -> Exception:
        if isinstance(exc, openai.RateLimitError):
            return RateLimitError(self.name(), f"Rate limited: {exc}")
        if isinstance(exc, TimeoutError):
            return TransportError(self.name(), f"Request timed out after {self._config.timeout_sec}s")
        return TransportError(self.name(), f"API call failed: {exc}")

    async def complete(
        self,
        messages: Messages,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Completion:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=messages,
                    temperature=self._temperature(temperature),
                    max_tokens=self._max_tokens(max_tokens),
                ),
                timeout=self._config.timeout_sec,
            )
        except Exception as exc:
            raise self._translate(exc) from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if not choice or choice.message.content is None:
            raise TransportError(self.name(), "Empty response content")

        usage = response.usage
        logger.info(
            "%s: %.2fs, %s tokens",
            self.name(),
            latency,
            usage.total_tokens if usage else None,
        )

        return Completion(
            content=choice.message.content,
            model=self._config.model,
            latency_sec=latency,
            prompt_tokens=usage.prompt_tokens if usage else None,
            completion_tokens=usage.completion_tokens if usage else None,
            total_tokens=usage.total_tokens if usage else None,
        )

    async def stream(
        self,
        messages: Messages,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=messages,
                    temperature=self._temperature(temperature),
                    max_tokens=self._max_tokens(max_tokens),
                    stream=True,
                ),
                timeout=self._config.timeout_sec,
            )
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except Exception as exc:
            raise self._translate(exc) from exc

    async def aclose(self) -> None:
        await self._client.close()
