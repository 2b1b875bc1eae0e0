"""
Retry Strategies using Tenacity.

Retry policy for upstream HTTP reads (bounty API).
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from repboard.core.exceptions import BountySourceError
from repboard.core.logging import get_logger

logger = get_logger("resilience.retry")

DEFAULT_ATTEMPTS = 3


def is_transient_error(exception: BaseException) -> bool:
    """Check if exception is a transient network/infrastructure error."""
    if isinstance(exception, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code in (429, 500, 502, 503, 504)
    if isinstance(exception, BountySourceError) and exception.status_code is not None:
        return exception.status_code in (429, 500, 502, 503, 504)
    return False


def _log_retry(retry_state: Any) -> None:
    logger.warning(
        f"Retrying upstream read... (Attempt {retry_state.attempt_number}): "
        f"{retry_state.outcome.exception()!r}"
    )


async def execute_with_retry(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    attempts: int = DEFAULT_ATTEMPTS,
    max_wait: float = 4.0,
    **kwargs: Any,
) -> Any:
    """
    Execute an async function, retrying transient failures with exponential backoff.

    Non-transient errors and the last transient error are re-raised.
    """
    async for attempt in AsyncRetrying(
        retry=retry_if_exception(is_transient_error),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=max_wait),
        stop=stop_after_attempt(attempts),
        reraise=True,
        before_sleep=_log_retry,
    ):
        with attempt:
            return await func(*args, **kwargs)
