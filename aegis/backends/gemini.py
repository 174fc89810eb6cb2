"""Gemini backend using google-genai SDK with native async."""

import asyncio
import logging
import time
from collections.abc import AsyncIterator

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from config.config_loader import BackendConfig
from aegis.backends.base import Messages, ModelBackend, require_api_key
from aegis.errors import RateLimitError, TransportError
from aegis.models import Completion

logger = logging.getLogger(__name__)


def _to_contents(messages: Messages) -> tuple[str | None, list[genai_types.Content]]:
    system_parts = [m["content"] for m in messages if m["role"] == "system"]
    contents = [
        genai_types.Content(
            role="model" if m["role"] == "assistant" else "user",
            parts=[genai_types.Part(text=m["content"])],
        )
        for m in messages
        if m["role"] != "system"
    ]
    return ("\n\n".join(system_parts) if system_parts else None), contents


class GeminiBackend(ModelBackend):
    """Google Gemini backend via google-genai SDK."""

    def __init__(self, config: BackendConfig) -> None:
        super().__init__(config)
        api_key = require_api_key(config)
        self._client = genai.Client(api_key=api_key)

    def _translate(self, exc: Exception) -> Exception:
        if isinstance(exc, genai_errors.APIError) and exc.code == 429:
            return RateLimitError(self.name(), f"Rate limited: {exc}")
        if isinstance(exc, TimeoutError):
            return TransportError(self.name(), f"Request timed out after {self._config.timeout_sec}s")
        return TransportError(self.name(), f"API call failed: {exc}")

    def _generation_config(
        self, system: str | None, temperature: float | None, max_tokens: int | None
    ) -> genai_types.GenerateContentConfig:
        return genai_types.GenerateContentConfig(
            system_instruction=system,
            temperature=self._temperature(temperature),
            max_output_tokens=self._max_tokens(max_tokens),
        )

    async def complete(
        self,
        messages: Messages,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Completion:
        system, contents = _to_contents(messages)
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._config.model,
                    contents=contents,
                    config=self._generation_config(system, temperature, max_tokens),
                ),
                timeout=self._config.timeout_sec,
            )
        except Exception as exc:
            raise self._translate(exc) from exc

        latency = time.monotonic() - start

        if response.text is None:
            raise TransportError(self.name(), "Empty response text")

        usage = response.usage_metadata
        logger.info(
            "%s: %.2fs, %s tokens",
            self.name(),
            latency,
            usage.total_token_count if usage else None,
        )

        return Completion(
            content=response.text,
            model=self._config.model,
            latency_sec=latency,
            prompt_tokens=usage.prompt_token_count if usage else None,
            completion_tokens=usage.candidates_token_count if usage else None,
            total_tokens=usage.total_token_count if usage else None,
        )

    async def stream(
        self,
        messages: Messages,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        system, contents = _to_contents(messages)
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content_stream(
                    model=self._config.model,
                    contents=contents,
                    config=self._generation_config(system, temperature, max_tokens),
                ),
                timeout=self._config.timeout_sec,
            )
            async for chunk in response:
                if chunk.text:
                    yield chunk.text
        except Exception as exc:
            raise self._translate(exc) from exc

    async def aclose(self) -> None:
        await self._client.aio.aclose()
