"""Abstract base for all model-serving backends."""

import os
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from config.config_loader import BackendConfig
from aegis.errors import ConfigurationError
from aegis.models import Completion

Messages = list[dict[str, str]]


def require_api_key(config: BackendConfig) -> str:
    """Return the backend's API key or raise ConfigurationError."""
    api_key = os.environ.get(config.api_key_env, "").strip()
    if not api_key:
        raise ConfigurationError(
            f"Missing API key for backend '{config.name}'",
            context={"env": config.api_key_env},
        )
    return api_key


class ModelBackend(ABC):
    """A named model endpoint with its sampling parameters."""

    def __init__(self, config: BackendConfig) -> None:
        self._config = config

    @property
    def config(self) -> BackendConfig:
        return self._config

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    @abstractmethod
    async def complete(
        self,
        messages: Messages,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Completion:
        """Run one batch completion.

        Args:
            messages: Ordered chat messages, each {"role": ..., "content": ...}.
            temperature: Overrides the configured temperature when given.
            max_tokens: Overrides the configured token cap when given.

        Raises:
            TransportError: On network failure, timeout or empty response.
            RateLimitError: When the provider throttles the request.
        """
        ...

    @abstractmethod
    def stream(
        self,
        messages: Messages,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        """Yield text fragments in order until the end of the stream.

        Raises TransportError or RateLimitError while iterating.
        """
        ...

    async def aclose(self) -> None:
        """Release the underlying client, if it holds one."""

    def _temperature(self, override: float | None) -> float:
        return self._config.temperature if override is None else override

    def _max_tokens(self, override: int | None) -> int:
        return self._config.max_tokens if override is None else override
