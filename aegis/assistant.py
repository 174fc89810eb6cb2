"""Composition root: wires backends, search, consensus, streaming and audit from config."""

import logging
import os
from collections.abc import AsyncIterator

from config.config_loader import AppConfig, BackendConfig
from aegis.backends.anthropic_backend import AnthropicBackend
from aegis.backends.base import ModelBackend
from aegis.backends.gemini import GeminiBackend
from aegis.backends.openai_backend import OpenAIBackend
from aegis.consensus import ConsensusEngine
from aegis.demo import apology_answer, demo_answer
from aegis.errors import ConfigurationError, GenerationError
from aegis.models import ConversationMessage, Done, Failed, ModelResponse, RiskAuditReport, StreamEvent
from aegis.risk_audit import ProgressCallback, RiskAuditPipeline
from aegis.search import SearchProvider, TavilySearchProvider
from aegis.streaming import StreamingResponseAggregator

logger = logging.getLogger(__name__)

BACKEND_CLASSES: dict[str, type[ModelBackend]] = {
    "openai": OpenAIBackend,
    "anthropic": AnthropicBackend,
    "gemini": GeminiBackend,
}


def build_backend(config: BackendConfig) -> ModelBackend:
    """Instantiate the backend class for config.sdk.

    Raises:
        ConfigurationError: Unknown sdk or missing API key.
    """
    if config.sdk not in BACKEND_CLASSES:
        raise ConfigurationError(f"Unknown sdk '{config.sdk}' for backend '{config.name}'")
    return BACKEND_CLASSES[config.sdk](config)


def build_all_backends(config: AppConfig) -> dict[str, ModelBackend]:
    """Build every backend that has credentials. Returns dict keyed by name."""
    backends: dict[str, ModelBackend] = {}
    for name in sorted(config.available_backends):
        try:
            backends[name] = build_backend(config.backends[name])
        except ConfigurationError as exc:
            logger.warning("Failed to instantiate backend '%s': %s", name, exc)
    return backends


def build_search(config: AppConfig) -> SearchProvider | None:
    api_key = os.environ.get(config.search.api_key_env, "").strip()
    if not api_key:
        logger.info("Web search disabled (no API key): set %s in .env", config.search.api_key_env)
        return None
    return TavilySearchProvider(
        api_key=api_key,
        timeout_sec=config.search.timeout_sec,
        search_depth=config.search.search_depth,
    )


class Assistant:
    """Answers prompts and audits answers; never raises for backend outages.

    With engine=None the assistant runs in demo mode and returns placeholder
    answers. The pipeline handles its own degraded mode.
    """

    def __init__(
        self,
        engine: ConsensusEngine | None,
        pipeline: RiskAuditPipeline,
        aggregator: StreamingResponseAggregator | None = None,
        resources: list[ModelBackend | SearchProvider] | None = None,
    ) -> None:
        self._engine = engine
        self._pipeline = pipeline
        self._aggregator = aggregator
        self._resources = resources or []

    @property
    def is_demo(self) -> bool:
        return self._engine is None

    async def answer(self, prompt: str) -> ModelResponse:
        if self._engine is None:
            logger.warning("Consensus backends not configured, returning demo answer")
            return demo_answer(prompt)
        try:
            return await self._engine.generate(prompt)
        except GenerationError as exc:
            logger.error("Generation failed: %s", exc)
            return apology_answer(str(exc))

    async def answer_stream(self, prompt: str) -> AsyncIterator[StreamEvent]:
        """Stream events; a Failed event from the aggregator becomes an apology Done."""
        if self._engine is None or self._aggregator is None:
            yield Done(await self.answer(prompt))
            return
        async for event in self._aggregator.stream(prompt):
            if isinstance(event, Done):
                yield event
            elif isinstance(event, Failed):
                logger.error("Streaming and batch generation failed: %s", event.error)
                yield Done(apology_answer(str(event.error)), replaces_partial=True)
            else:
                yield event

    async def audit(
        self,
        text: str,
        conversation_history: list[ConversationMessage] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> RiskAuditReport:
        return await self._pipeline.analyze_risk(text, conversation_history, on_progress)

    async def aclose(self) -> None:
        for resource in self._resources:
            await resource.aclose()


def build_assistant(config: AppConfig, backends: dict[str, ModelBackend] | None = None) -> Assistant:
    """Wire an Assistant from configuration.

    Missing credentials for any consensus member or the fallback put
    consensus in demo mode; a missing judge leaves the audit in placeholder
    mode. Neither case raises.
    """
    if backends is None:
        backends = build_all_backends(config)

    consensus_names = [b.name for b in config.consensus.primaries] + [config.consensus.fallback.name]
    missing = [n for n in consensus_names if n not in backends]

    search = build_search(config)
    engine: ConsensusEngine | None = None
    aggregator: StreamingResponseAggregator | None = None
    if missing:
        logger.warning("Consensus in demo mode, missing backends: %s", ", ".join(missing))
    else:
        primaries = [backends[b.name] for b in config.consensus.primaries]
        engine = ConsensusEngine(
            primaries=primaries,
            fallback=backends[config.consensus.fallback.name],
            similarity_threshold=config.consensus.similarity_threshold,
            search=search,
            max_results=config.search.max_results,
        )
        aggregator = StreamingResponseAggregator(primaries[0], engine)

    judge_cfg = config.audit.judge
    judge = backends.get(judge_cfg.name) if judge_cfg else None
    if judge_cfg is None:
        reason = "no judge backend configured"
    else:
        reason = f"no credentials for judge backend '{judge_cfg.name}' (set {judge_cfg.api_key_env})"
    pipeline = RiskAuditPipeline(
        judge=judge,
        pacing_delay_sec=config.audit.pacing_delay_sec,
        unavailable_reason=reason,
    )

    resources: list[ModelBackend | SearchProvider] = list(backends.values())
    if search is not None:
        resources.append(search)
    return Assistant(engine, pipeline, aggregator, resources)
