"""Exception hierarchy for Aegis Veritas."""

from typing import Any


class AegisError(Exception):
    """Base exception for all aegis errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ConfigurationError(AegisError):
    """Raised when configuration is invalid or credentials are missing."""


class BackendError(AegisError):
    """Raised when a single backend call fails."""

    def __init__(self, backend_name: str, message: str) -> None:
        self.backend_name = backend_name
        super().__init__(f"[{backend_name}] {message}")


class TransportError(BackendError):
    """Network failure, provider outage, timeout or unusable response."""


class RateLimitError(BackendError):
    """The provider signalled throttling (HTTP 429)."""


class CompoundFailure(BackendError):
    """Both the primary backend and its fallback failed."""

    def __init__(self, primary_name: str, fallback_name: str) -> None:
        self.primary_name = primary_name
        self.fallback_name = fallback_name
        super().__init__(
            primary_name,
            f"primary and fallback both failed (primary={primary_name}, fallback={fallback_name})",
        )


class GenerationError(AegisError):
    """No consensus answer could be produced."""

    def __init__(self, backend_names: list[str], fallback_name: str | None = None) -> None:
        self.backend_names = list(backend_names)
        self.fallback_name = fallback_name
        names = ", ".join(self.backend_names)
        if fallback_name:
            names = f"{names} (fallback {fallback_name})"
        super().__init__(f"Generation failed for backend(s): {names}")


class ParseError(AegisError):
    """A judge response does not follow the expected line grammar."""

    def __init__(self, message: str, raw_response: str | None = None) -> None:
        super().__init__(message)
        self.raw_response = raw_response
