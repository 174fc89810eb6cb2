"""Load settings.yaml into frozen dataclasses. Validates consensus wiring at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from aegis.errors import ConfigurationError

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

_SUPPORTED_SDKS = {"openai", "anthropic", "gemini"}


@dataclass(frozen=True)
class BackendConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    temperature: float
    max_tokens: int
    base_url: str | None = None


@dataclass(frozen=True)
class ConsensusConfig:
    primaries: tuple[BackendConfig, ...]
    fallback: BackendConfig
    similarity_threshold: float

    def __post_init__(self) -> None:
        if not 2 <= len(self.primaries) <= 3:
            raise ConfigurationError(
                f"Consensus needs 2 or 3 primary backends, got {len(self.primaries)}"
            )
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ConfigurationError(
                f"similarity_threshold must be within [0, 1], got {self.similarity_threshold}"
            )


@dataclass(frozen=True)
class SearchConfig:
    api_key_env: str
    max_results: int = 5
    timeout_sec: float = 30.0
    search_depth: str = "basic"


@dataclass(frozen=True)
class AuditConfig:
    judge: BackendConfig | None
    pacing_delay_sec: float = 0.0


@dataclass(frozen=True)
class AppConfig:
    backends: dict[str, BackendConfig]
    consensus: ConsensusConfig
    search: SearchConfig
    audit: AuditConfig
    available_backends: frozenset[str] = field(default_factory=frozenset)


def has_api_key(env_name: str) -> bool:
    return bool(os.environ.get(env_name, "").strip())


def _lookup(backends: dict[str, BackendConfig], name: str, role: str) -> BackendConfig:
    if name not in backends:
        raise ConfigurationError(f"Unknown backend '{name}' configured as {role}")
    return backends[name]


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if the settings file is missing and
    ConfigurationError on invalid wiring. Missing API keys are only logged:
    the assistant degrades to demo mode for those backends.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    backends: dict[str, BackendConfig] = {}
    available: set[str] = set()

    for backend_name, backend_raw in raw["backends"].items():
        sdk = backend_raw["sdk"]
        if sdk not in _SUPPORTED_SDKS:
            raise ConfigurationError(f"Backend '{backend_name}' uses unsupported sdk '{sdk}'")
        backends[backend_name] = BackendConfig(
            name=backend_name,
            sdk=sdk,
            model=backend_raw["model"],
            api_key_env=backend_raw["api_key_env"],
            timeout_sec=int(backend_raw["timeout_sec"]),
            temperature=float(backend_raw.get("temperature", 0.7)),
            max_tokens=int(backend_raw["max_tokens"]),
            base_url=backend_raw.get("base_url"),
        )

        if has_api_key(backend_raw["api_key_env"]):
            available.add(backend_name)
            logger.info("Backend available: %s", backend_name)
        else:
            logger.info(
                "Backend skipped (no API key): %s — set %s in .env",
                backend_name,
                backend_raw["api_key_env"],
            )

    consensus_raw = raw["consensus"]
    primary_names = [consensus_raw["primary"], consensus_raw["secondary"]]
    if consensus_raw.get("tertiary"):
        primary_names.append(consensus_raw["tertiary"])
    consensus = ConsensusConfig(
        primaries=tuple(_lookup(backends, n, "consensus member") for n in primary_names),
        fallback=_lookup(backends, consensus_raw["fallback"], "fallback"),
        similarity_threshold=float(consensus_raw["similarity_threshold"]),
    )

    search_raw = raw.get("search", {})
    search = SearchConfig(
        api_key_env=search_raw.get("api_key_env", "TAVILY_API_KEY"),
        max_results=int(search_raw.get("max_results", 5)),
        timeout_sec=float(search_raw.get("timeout_sec", 30.0)),
        search_depth=search_raw.get("search_depth", "basic"),
    )

    audit_raw = raw.get("audit", {})
    judge_name = audit_raw.get("judge")
    audit = AuditConfig(
        judge=_lookup(backends, judge_name, "judge") if judge_name else None,
        pacing_delay_sec=float(audit_raw.get("pacing_delay_sec", 0.0)),
    )

    return AppConfig(
        backends=backends,
        consensus=consensus,
        search=search,
        audit=audit,
        available_backends=frozenset(available),
    )
