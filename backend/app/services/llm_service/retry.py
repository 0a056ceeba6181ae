"""Transport-level retry with exponential back-off for LLM calls.

:func:`with_retry` retries rate-limited (429) and server-side (5xx)
failures, doubling the delay after every attempt.  Anything else
propagates immediately.  The structured extractor runs its own attempt
loop on top of this one; the two layers are independent.

Usage::

    from app.services.llm_service.retry import with_retry

    response = await with_retry(lambda: llm.ainvoke(messages))
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from app.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_RETRIES = settings.LLM_MAX_RETRIES
INITIAL_RETRY_DELAY = settings.LLM_INITIAL_RETRY_DELAY


def get_status_code(error: BaseException) -> Optional[int]:
    """Return the HTTP status carried by *error*, if any.

    Looks at ``status_code`` / ``status`` on the exception itself (openai,
    google, langchain errors) and then at ``error.response.status_code``
    (httpx, requests).
    """
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value

    response = getattr(error, "response", None)
    if response is not None:
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value

    return None


def is_retryable_error(error: BaseException) -> bool:
    """Rate limits (429) and server errors (5xx) are worth retrying."""
    status = get_status_code(error)
    if status is None:
        return False
    return status == 429 or 500 <= status < 600


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    retries: int = MAX_RETRIES,
    delay: float = INITIAL_RETRY_DELAY,
) -> T:
    """Await ``fn()`` and retry transient failures with exponential back-off.

    Args:
        fn: Zero-argument callable returning a fresh awaitable per call.
        retries: Retries allowed after the first attempt.
        delay: Seconds to wait before the first retry; doubled each time.

    Returns:
        The result of the first successful call.

    Raises:
        Exception: The terminal error, or the last retryable error once
            *retries* is exhausted.
    """
    while True:
        try:
            return await fn()
        except Exception as exc:
            if retries <= 0 or not is_retryable_error(exc):
                raise

            logger.warning(
                "LLM call failed with status %s, retrying in %.2fs (%d retries left)",
                get_status_code(exc), delay, retries,
            )
            await asyncio.sleep(delay)
            retries -= 1
            delay *= 2
