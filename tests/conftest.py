"""Shared pytest fixtures."""

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock

import pytest

from config.config_loader import (
    AppConfig,
    AuditConfig,
    BackendConfig,
    ConsensusConfig,
    SearchConfig,
)
from aegis.backends.base import Messages, ModelBackend
from aegis.errors import TransportError
from aegis.models import Completion, SearchResult
from aegis.search import SearchProvider


def make_backend_config(name: str = "test_backend", sdk: str = "openai") -> BackendConfig:
    return BackendConfig(
        name=name,
        sdk=sdk,
        model=f"{name}-model",
        api_key_env=f"{name.upper()}_API_KEY",
        timeout_sec=30,
        temperature=0.7,
        max_tokens=1000,
    )


def completion(content: str, model: str = "mock-model") -> Completion:
    return Completion(content=content, model=model, latency_sec=0.1, total_tokens=10)


class MockBackend(ModelBackend):
    """Test double ModelBackend.

    `complete` is an AsyncMock; `stream` yields `fragments` and then raises
    `stream_error` if one is set.
    """

    def __init__(
        self,
        backend_name: str = "mock",
        response_content: str = "Mock response",
        fragments: list[str] | None = None,
        stream_error: Exception | None = None,
    ) -> None:
        super().__init__(make_backend_config(backend_name))
        self.fragments = fragments if fragments is not None else response_content.split(" ")
        self.stream_error = stream_error
        self.stream_calls = 0
        self.complete = AsyncMock(  # type: ignore[method-assign]
            return_value=completion(response_content, model=f"{backend_name}-model")
        )

    async def complete(  # type: ignore[override]
        self,
        messages: Messages,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Completion:
        """Default implementation; replaced by AsyncMock in __init__."""
        return completion("Mock response")

    async def stream(
        self,
        messages: Messages,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        self.stream_calls += 1
        for fragment in self.fragments:
            yield fragment
        if self.stream_error is not None:
            raise self.stream_error


class MockSearch(SearchProvider):
    def __init__(self, results: list[SearchResult] | None = None, error: Exception | None = None) -> None:
        self.results = results if results is not None else [
            SearchResult(title="Arithmetic", url="https://example.com/math", snippet="2+2 equals 4."),
        ]
        self.error = error
        self.calls: list[tuple[str, int]] = []

    async def search(self, query: str, max_results: int = 5) -> list[SearchResult]:
        self.calls.append((query, max_results))
        if self.error is not None:
            raise self.error
        return self.results


@pytest.fixture
def mock_backend() -> MockBackend:
    return MockBackend()


@pytest.fixture
def mock_search() -> MockSearch:
    return MockSearch()


@pytest.fixture
def failing_search() -> MockSearch:
    return MockSearch(error=TransportError("tavily", "connection refused"))


@pytest.fixture
def sample_app_config() -> AppConfig:
    llama = make_backend_config("llama")
    qwen = make_backend_config("qwen")
    fallback = make_backend_config("fallback")
    judge = make_backend_config("judge")
    return AppConfig(
        backends={b.name: b for b in (llama, qwen, fallback, judge)},
        consensus=ConsensusConfig(primaries=(llama, qwen), fallback=fallback, similarity_threshold=0.5),
        search=SearchConfig(api_key_env="TEST_TAVILY_KEY"),
        audit=AuditConfig(judge=judge),
        available_backends=frozenset({"llama", "qwen", "fallback", "judge"}),
    )
