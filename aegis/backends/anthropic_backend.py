"""Anthropic Claude backend using anthropic SDK with native async."""

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from typing import Any

import anthropic as anthropic_sdk

from config.config_loader import BackendConfig
from aegis.backends.base import Messages, ModelBackend, require_api_key
from aegis.errors import RateLimitError, TransportError
from aegis.models import Completion

logger = logging.getLogger(__name__)


def _split_system(messages: Messages) -> tuple[str | None, Messages]:
    """Anthropic takes the system prompt as a separate argument."""
    system_parts = [m["content"] for m in messages if m["role"] == "system"]
    chat = [m for m in messages if m["role"] != "system"]
    return ("\n\n".join(system_parts) if system_parts else None), chat


class AnthropicBackend(ModelBackend):
    """Anthropic Claude backend via anthropic SDK."""

    def __init__(self, config: BackendConfig) -> None:
        super().__init__(config)
        api_key = require_api_key(config)
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    def _translate(self, exc: Exception) -> Exception:
        if isinstance(exc, anthropic_sdk.RateLimitError):
            return RateLimitError(self.name(), f"Rate limited: {exc}")
        if isinstance(exc, TimeoutError):
            return TransportError(self.name(), f"Request timed out after {self._config.timeout_sec}s")
        return TransportError(self.name(), f"API call failed: {exc}")

    def _request(self, messages: Messages, temperature: float | None, max_tokens: int | None) -> dict[str, Any]:
        system, chat = _split_system(messages)
        kwargs: dict[str, Any] = {
            "model": self._config.model,
            "max_tokens": self._max_tokens(max_tokens),
            "temperature": self._temperature(temperature),
            "messages": chat,
        }
        if system:
            kwargs["system"] = system
        return kwargs

    async def complete(
        self,
        messages: Messages,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Completion:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.messages.create(**self._request(messages, temperature, max_tokens)),
                timeout=self._config.timeout_sec,
            )
        except Exception as exc:
            raise self._translate(exc) from exc

        latency = time.monotonic() - start

        text_blocks = [b.text for b in response.content if b.type == "text"]
        if not text_blocks:
            raise TransportError(self.name(), "No text blocks in response")

        prompt_tokens = completion_tokens = total_tokens = None
        if response.usage:
            prompt_tokens = response.usage.input_tokens
            completion_tokens = response.usage.output_tokens
            total_tokens = prompt_tokens + completion_tokens

        logger.info("%s: %.2fs, %s tokens", self.name(), latency, total_tokens)

        return Completion(
            content="\n".join(text_blocks),
            model=self._config.model,
            latency_sec=latency,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens,
        )

    async def stream(
        self,
        messages: Messages,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        try:
            async with self._client.messages.stream(
                **self._request(messages, temperature, max_tokens)
            ) as stream:
                async for text in stream.text_stream:
                    if text:
                        yield text
        except Exception as exc:
            raise self._translate(exc) from exc

    async def aclose(self) -> None:
        await self._client.close()
