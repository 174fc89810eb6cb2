"""Backend health checks — ping each API before answering."""

import asyncio
import logging

from aegis.backends.base import ModelBackend

logger = logging.getLogger(__name__)

_PING_MESSAGES = [
    {"role": "system", "content": 'Respond with just "OK"'},
    {"role": "user", "content": "Test"},
]
_TIMEOUT_SEC = 15.0


async def _check_one(name: str, backend: ModelBackend) -> tuple[str, bool, str]:
    """Ping a single backend. Returns (name, ok, error_message)."""
    try:
        completion = await asyncio.wait_for(
            backend.complete(_PING_MESSAGES, temperature=0.0, max_tokens=5),
            timeout=_TIMEOUT_SEC,
        )
    except Exception as exc:
        logger.debug("Health check failed for %s: %s", name, exc)
        return name, False, str(exc) or type(exc).__name__
    if not completion.content.strip():
        return name, False, "Empty response"
    return name, True, ""


async def run_health_checks(
    backends: dict[str, ModelBackend],
) -> dict[str, tuple[bool, str]]:
    """Ping all backends in parallel.

    Returns:
        Dict mapping backend name -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(n, b) for n, b in backends.items()))
    return {name: (ok, err) for name, ok, err in results}
