"""Unit tests for SDK backends with mocked clients — no real API calls."""

import asyncio
from dataclasses import replace
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import openai
import pytest

from aegis.backends.anthropic_backend import AnthropicBackend, _split_system
from aegis.backends.gemini import GeminiBackend
from aegis.backends.openai_backend import OpenAIBackend
from aegis.errors import ConfigurationError, RateLimitError, TransportError
from tests.conftest import make_backend_config

MESSAGES = [
    {"role": "system", "content": "Be brief."},
    {"role": "user", "content": "What is 2+2?"},
]


def _chat_response(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=3, total_tokens=15),
    )


def _chunk(text: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


def _http_response(status: int) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", "https://api.example.com/v1"))


@pytest.fixture
def openai_backend(monkeypatch) -> OpenAIBackend:
    monkeypatch.setenv("LLAMA_API_KEY", "gsk-test")
    backend = OpenAIBackend(make_backend_config("llama"))
    backend._client = MagicMock()
    return backend


def test_missing_api_key_raises(monkeypatch):
    monkeypatch.delenv("LLAMA_API_KEY", raising=False)
    with pytest.raises(ConfigurationError, match="Missing API key"):
        OpenAIBackend(make_backend_config("llama"))


async def test_openai_complete_returns_completion(openai_backend):
    openai_backend._client.chat.completions.create = AsyncMock(return_value=_chat_response("4"))

    result = await openai_backend.complete(MESSAGES, temperature=0.0, max_tokens=5)

    assert result.content == "4"
    assert result.model == "llama-model"
    assert result.total_tokens == 15
    kwargs = openai_backend._client.chat.completions.create.await_args.kwargs
    assert kwargs["temperature"] == 0.0
    assert kwargs["max_tokens"] == 5
    assert kwargs["messages"] == MESSAGES


async def test_openai_complete_uses_configured_defaults(openai_backend):
    openai_backend._client.chat.completions.create = AsyncMock(return_value=_chat_response("4"))
    await openai_backend.complete(MESSAGES)
    kwargs = openai_backend._client.chat.completions.create.await_args.kwargs
    assert kwargs["temperature"] == 0.7
    assert kwargs["max_tokens"] == 1000


async def test_openai_rate_limit_is_translated(openai_backend):
    openai_backend._client.chat.completions.create = AsyncMock(
        side_effect=openai.RateLimitError("slow down", response=_http_response(429), body=None)
    )
    with pytest.raises(RateLimitError, match="llama"):
        await openai_backend.complete(MESSAGES)


async def test_openai_connection_error_is_transport_error(openai_backend):
    openai_backend._client.chat.completions.create = AsyncMock(
        side_effect=openai.APIConnectionError(request=httpx.Request("POST", "https://api.example.com/v1"))
    )
    with pytest.raises(TransportError, match="API call failed"):
        await openai_backend.complete(MESSAGES)


async def test_openai_timeout_is_transport_error(openai_backend):
    async def hang(**kwargs):
        await asyncio.sleep(9999)

    openai_backend._client.chat.completions.create = AsyncMock(side_effect=hang)
    openai_backend._config = replace(openai_backend.config, timeout_sec=0.05)
    with pytest.raises(TransportError, match="timed out"):
        await openai_backend.complete(MESSAGES)


async def test_openai_empty_content_is_transport_error(openai_backend):
    openai_backend._client.chat.completions.create = AsyncMock(return_value=_chat_response(None))
    with pytest.raises(TransportError, match="Empty response"):
        await openai_backend.complete(MESSAGES)


async def test_openai_stream_yields_non_empty_deltas(openai_backend):
    async def chunks():
        for text in ["The ", None, "answer", "", " is 4."]:
            yield _chunk(text)

    openai_backend._client.chat.completions.create = AsyncMock(return_value=chunks())

    fragments = [f async for f in openai_backend.stream(MESSAGES)]

    assert fragments == ["The ", "answer", " is 4."]
    assert openai_backend._client.chat.completions.create.await_args.kwargs["stream"] is True


async def test_openai_stream_error_mid_way_is_translated(openai_backend):
    async def chunks():
        yield _chunk("partial")
        raise openai.APIConnectionError(request=httpx.Request("POST", "https://api.example.com/v1"))

    openai_backend._client.chat.completions.create = AsyncMock(return_value=chunks())

    received = []
    with pytest.raises(TransportError):
        async for fragment in openai_backend.stream(MESSAGES):
            received.append(fragment)
    assert received == ["partial"]


def test_split_system_prompt():
    system, chat = _split_system(MESSAGES)
    assert system == "Be brief."
    assert chat == [{"role": "user", "content": "What is 2+2?"}]


def test_split_system_without_system_prompt():
    assert _split_system(MESSAGES[1:]) == (None, MESSAGES[1:])


async def test_anthropic_complete_joins_text_blocks(monkeypatch):
    monkeypatch.setenv("CLAUDE_API_KEY", "sk-ant-test")
    backend = AnthropicBackend(make_backend_config("claude", sdk="anthropic"))
    backend._client = MagicMock()
    backend._client.messages.create = AsyncMock(return_value=SimpleNamespace(
        content=[SimpleNamespace(type="text", text="Four."), SimpleNamespace(type="tool_use")],
        usage=SimpleNamespace(input_tokens=10, output_tokens=2),
    ))

    result = await backend.complete(MESSAGES)

    assert result.content == "Four."
    assert result.total_tokens == 12
    kwargs = backend._client.messages.create.await_args.kwargs
    assert kwargs["system"] == "Be brief."
    assert kwargs["messages"] == [{"role": "user", "content": "What is 2+2?"}]


async def test_anthropic_rate_limit_is_translated(monkeypatch):
    monkeypatch.setenv("CLAUDE_API_KEY", "sk-ant-test")
    backend = AnthropicBackend(make_backend_config("claude", sdk="anthropic"))
    backend._client = MagicMock()
    backend._client.messages.create = AsyncMock(
        side_effect=anthropic.RateLimitError("slow down", response=_http_response(429), body=None)
    )
    with pytest.raises(RateLimitError):
        await backend.complete(MESSAGES)


async def test_gemini_aclose_releases_async_client(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "gm-test")
    backend = GeminiBackend(make_backend_config("gemini", sdk="gemini"))
    backend._client = MagicMock()
    backend._client.aio.aclose = AsyncMock()

    await backend.aclose()

    backend._client.aio.aclose.assert_awaited_once()
