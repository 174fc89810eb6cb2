"""Consensus orchestration: grounded prompt, parallel backend calls, reduction."""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime

from aegis.backends.base import ModelBackend
from aegis.errors import BackendError, CompoundFailure, GenerationError
from aegis.fallback import FallbackQueryExecutor
from aegis.models import ModelResponse, SearchResult
from aegis.search import SearchProvider
from aegis.similarity import similarity

logger = logging.getLogger(__name__)

SEARCH_MAX_RESULTS = 5

SEARCH_UNAVAILABLE = SearchResult(
    title="Search unavailable",
    url="",
    snippet="Web search could not be completed; answer from model knowledge only.",
)

_SEPARATOR = "\n\n---\n\n"


def build_contextual_prompt(prompt: str, results: list[SearchResult]) -> str:
    """Numbered `title: snippet` context lines followed by the question."""
    context = "\n".join(f"{i}. {r.title}: {r.snippet}" for i, r in enumerate(results, start=1))
    return f"Context from web search:\n{context}\n\nQuestion: {prompt}"


def _section(heading: str, response: ModelResponse) -> str:
    return f"**{heading} ({response.backend}):**\n{response.content}"


def _combined(content: str, backend: str, responses: list[ModelResponse]) -> ModelResponse:
    token_counts = [r.token_count for r in responses if r.token_count is not None]
    return ModelResponse(
        content=content,
        backend=backend,
        model=" + ".join(r.model for r in responses),
        timestamp=datetime.now(),
        latency_sec=max(r.latency_sec for r in responses),
        token_count=sum(token_counts) if token_counts else None,
    )


def reduce_two(primary: ModelResponse, secondary: ModelResponse, threshold: float) -> ModelResponse:
    """Publish primary verbatim when the two agree, otherwise both perspectives."""
    score = similarity(primary.content, secondary.content)
    logger.info("Similarity %s/%s: %.2f", primary.backend, secondary.backend, score)

    if score >= threshold:
        return primary

    content = _SEPARATOR.join([
        _section("Perspective 1", primary),
        _section("Perspective 2", secondary),
    ])
    return _combined(content, f"{primary.backend} + {secondary.backend}", [primary, secondary])


def reduce_three(
    first: ModelResponse,
    second: ModelResponse,
    third: ModelResponse,
    threshold: float,
) -> ModelResponse:
    """Full consensus, one agreeing pair plus an alternative, or diverse views.

    Pairs are evaluated in the fixed order AB, AC, BC; the first one at or
    above the threshold wins.
    """
    responses = [first, second, third]
    pairs = [
        (first, second, third),
        (first, third, second),
        (second, third, first),
    ]
    scores = [similarity(a.content, b.content) for a, b, _ in pairs]
    logger.info("Pairwise similarity AB=%.2f AC=%.2f BC=%.2f", *scores)

    if all(score >= threshold for score in scores):
        return _combined(
            first.content,
            f"{first.backend}+{second.backend}+{third.backend} (High Consensus)",
            responses,
        )

    for (a, b, outsider), score in zip(pairs, scores):
        if score >= threshold:
            content = _SEPARATOR.join([
                f"**Consensus ({a.backend} + {b.backend}):**\n{a.content}",
                _section("Alternative Perspective", outsider),
            ])
            return _combined(
                content,
                f"{a.backend}+{b.backend} (Consensus) + {outsider.backend} (Alternative)",
                responses,
            )

    content = _SEPARATOR.join(
        _section(f"Perspective {i}", r) for i, r in enumerate(responses, start=1)
    )
    return _combined(
        content,
        f"{first.backend} + {second.backend} + {third.backend} (Diverse Views)",
        responses,
    )


class ConsensusEngine:
    """Fans a grounded prompt out to 2-3 backends and reduces the answers to one."""

    def __init__(
        self,
        primaries: list[ModelBackend],
        fallback: ModelBackend,
        similarity_threshold: float,
        search: SearchProvider | None = None,
        executor: FallbackQueryExecutor | None = None,
        max_results: int = SEARCH_MAX_RESULTS,
    ) -> None:
        if not 2 <= len(primaries) <= 3:
            raise ValueError(f"ConsensusEngine needs 2 or 3 backends, got {len(primaries)}")
        self._primaries = list(primaries)
        self._fallback = fallback
        self._threshold = similarity_threshold
        self._search = search
        self._executor = executor or FallbackQueryExecutor()
        self._max_results = max_results

    @property
    def primary(self) -> ModelBackend:
        return self._primaries[0]

    async def gather_sources(self, prompt: str) -> list[SearchResult]:
        """Search for context; a failed or missing search degrades to a placeholder."""
        if self._search is None:
            logger.warning("No search provider configured, answering without web context")
            return [SEARCH_UNAVAILABLE]
        try:
            results = await self._search.search(prompt, max_results=self._max_results)
        except BackendError as exc:
            logger.warning("Search failed, continuing without web context: %s", exc)
            return [SEARCH_UNAVAILABLE]
        return results or [SEARCH_UNAVAILABLE]

    async def generate(self, prompt: str) -> ModelResponse:
        """Produce one published answer with the search results attached.

        Every backend's fallback chain settles before the results are combined.

        Raises:
            GenerationError: Naming every backend whose fallback chain was exhausted.
        """
        sources = await self.gather_sources(prompt)
        messages = [{"role": "user", "content": build_contextual_prompt(prompt, sources)}]

        logger.info("Querying %d backends", len(self._primaries))
        results = await asyncio.gather(
            *(
                self._executor.query_with_fallback(backend, self._fallback, messages)
                for backend in self._primaries
            ),
            return_exceptions=True,
        )

        failed: list[str] = []
        fallback_name: str | None = None
        responses: list[ModelResponse] = []
        for backend, result in zip(self._primaries, results):
            if isinstance(result, BackendError):
                failed.append(backend.name())
                if isinstance(result, CompoundFailure):
                    fallback_name = result.fallback_name
            elif isinstance(result, BaseException):
                raise result
            else:
                responses.append(result)

        if failed:
            raise GenerationError(failed, fallback_name)

        if len(responses) == 2:
            published = reduce_two(responses[0], responses[1], self._threshold)
        else:
            published = reduce_three(responses[0], responses[1], responses[2], self._threshold)

        return replace(published, sources=tuple(sources))
