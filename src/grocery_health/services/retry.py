"""Bounded retry with per-attempt timeout for network calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    *,
    action: str,
    attempts: int = 1,
    delay_seconds: float = 0.5,
    timeout_seconds: float | None = None,
) -> T:
    """Call an async function, retrying ``attempts`` extra times on failure.

    Each attempt is bounded by ``timeout_seconds``. The last error is
    re-raised once retries are exhausted.
    """
    attempt = 0
    while True:
        try:
            if timeout_seconds is None:
                return await func()
            return await asyncio.wait_for(func(), timeout=timeout_seconds)
        except Exception as exc:
            attempt += 1
            _logger.warning(
                "%s failed (attempt %s/%s, status=%s): %s",
                action,
                attempt,
                attempts + 1,
                status_code_from_exception(exc),
                exc,
            )
            if attempt > attempts:
                raise
            await asyncio.sleep(delay_seconds)


def status_code_from_exception(exc: Exception) -> str:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    status_code = getattr(exc, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"
