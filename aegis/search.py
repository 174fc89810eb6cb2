"""Web search providers used to ground backend prompts."""

import logging
import re
from abc import ABC, abstractmethod

import httpx

from aegis.errors import TransportError
from aegis.models import SearchResult

logger = logging.getLogger(__name__)

_MAX_QUERY_LEN = 400


def sanitize_query(query: str) -> str:
    """Strip markup/quote characters, collapse whitespace and cap the length."""
    cleaned = re.sub(r"[<>\"']", "", query)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return cleaned[:_MAX_QUERY_LEN]


class SearchProvider(ABC):
    """Abstract web-search contract."""

    @abstractmethod
    async def search(self, query: str, max_results: int = 5) -> list[SearchResult]:
        """Return up to max_results results in relevance order.

        Raises:
            TransportError: On network failure or an unusable query.
        """
        ...

    async def aclose(self) -> None:
        """Release the underlying client, if it holds one."""


class TavilySearchProvider(SearchProvider):
    """
    Tavily Search API client.

    Tavily returns clean, LLM-ready snippets, so the result content is used
    as the snippet verbatim.
    """

    BASE_URL = "https://api.tavily.com"
    NAME = "tavily"

    def __init__(
        self,
        api_key: str,
        timeout_sec: float = 30.0,
        search_depth: str = "basic",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.timeout_sec = timeout_sec
        self.search_depth = search_depth
        self.client = client or httpx.AsyncClient()

    async def search(self, query: str, max_results: int = 5) -> list[SearchResult]:
        sanitized = sanitize_query(query)
        if not sanitized:
            raise TransportError(self.NAME, "Invalid search query")

        try:
            response = await self.client.post(
                f"{self.BASE_URL}/search",
                json={
                    "api_key": self.api_key,
                    "query": sanitized,
                    "search_depth": self.search_depth,
                    "max_results": max_results,
                },
                timeout=self.timeout_sec,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise TransportError(self.NAME, f"Search failed: {exc}") from exc

        raw_results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(raw_results, list) or not all(isinstance(r, dict) for r in raw_results):
            raise TransportError(self.NAME, "Malformed search response")

        results = [
            SearchResult(
                title=r.get("title") or "Untitled",
                url=r.get("url") or "",
                snippet=r.get("content") or "",
            )
            for r in raw_results[:max_results]
        ]
        logger.info("Search returned %d results for %r", len(results), sanitized[:60])
        return results

    async def aclose(self) -> None:
        await self.client.aclose()
