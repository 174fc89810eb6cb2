"""Dataclasses for the consensus and audit pipeline. No logic beyond validation."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class SearchResult:
    title: str
    url: str
    snippet: str


@dataclass(frozen=True)
class Completion:
    """Raw result of one backend call, before it is tagged with a backend name."""

    content: str
    model: str
    latency_sec: float
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


@dataclass(frozen=True)
class ModelResponse:
    content: str
    backend: str           # backend name, or a combined label after consensus
    model: str
    timestamp: datetime = field(default_factory=datetime.now)
    latency_sec: float = 0.0
    token_count: int | None = None
    sources: tuple[SearchResult, ...] = ()


@dataclass(frozen=True)
class ConversationMessage:
    id: str
    role: str              # "user" or "assistant"
    content: str
    backend: str | None = None
    sources: tuple[SearchResult, ...] = ()


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class AuditItem:
    id: str
    severity: Severity
    message: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class RiskMetrics:
    clarity: float
    bias: float
    toxicity: float
    hallucination: float
    intent_alignment: float

    def __post_init__(self) -> None:
        for name in ("clarity", "bias", "toxicity", "hallucination", "intent_alignment"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")


class StatusGlyph(str, Enum):
    GOOD = "✅"
    MODERATE = "⚠️"
    BAD = "❌"
    PLACEHOLDER = "🔧"


@dataclass(frozen=True)
class RiskAuditReport:
    is_compliant: bool
    reasoning: str
    summary: tuple[StatusGlyph, ...]
    items: tuple[AuditItem, ...]
    metrics: RiskMetrics
    explanation: str
    is_live: bool = True


class Metric(str, Enum):
    CLARITY = "clarity"
    HALLUCINATION = "hallucination"
    BIAS = "bias"
    TOXICITY = "toxicity"
    INTENT_ALIGNMENT = "intent_alignment"


class MetricState(str, Enum):
    PENDING = "pending"
    ANALYZING = "analyzing"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ProgressEvent:
    metric: Metric
    state: MetricState


# Stream events: Token* then exactly one Done or Failed.

@dataclass(frozen=True)
class Token:
    text: str


@dataclass(frozen=True)
class Done:
    response: ModelResponse
    replaces_partial: bool = False  # True: discard every Token shown so far


@dataclass(frozen=True)
class Failed:
    error: Exception


StreamEvent = Token | Done | Failed
