"""Backoff for device client reads and state file writes."""
import asyncio
import logging
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Device REST calls and local file writes can fail transiently
RETRYABLE_EXCEPTIONS = (
    ConnectionRefusedError,
    ConnectionResetError,
    TimeoutError,
    OSError,
    EOFError,
    httpx.TransportError,
)


def _policy(max_attempts: int, min_wait: float, max_wait: float, exceptions: tuple) -> dict[str, Any]:
    return {
        "stop": stop_after_attempt(max_attempts),
        "wait": wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        "retry": retry_if_exception_type(exceptions),
        "before_sleep": before_sleep_log(logger, logging.WARNING),
        "reraise": True,
    }


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
) -> Callable:
    """Retry the decorated function (sync or async) with exponential backoff.

    Args:
        max_attempts: Attempts before the last error is re-raised
        min_wait: Shortest pause between attempts (seconds)
        max_wait: Longest pause between attempts (seconds)
        exceptions: Exception types worth another attempt
    """
    policy = _policy(max_attempts, min_wait, max_wait, exceptions)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        if asyncio.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> T:
                async for attempt in AsyncRetrying(**policy):
                    with attempt:
                        return await func(*args, **kwargs)  # type: ignore[misc]
                raise AssertionError("unreachable")  # pragma: no cover

            return async_wrapper  # type: ignore[return-value]

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in Retrying(**policy):
                with attempt:
                    return func(*args, **kwargs)
            raise AssertionError("unreachable")  # pragma: no cover

        return sync_wrapper

    return decorator


async def call_with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
) -> T:
    """Await ``func(*args)`` under the same policy as :func:`with_retry`.

    For methods on objects we do not own, such as the device client.
    """
    async for attempt in AsyncRetrying(**_policy(max_attempts, min_wait, max_wait, exceptions)):
        with attempt:
            return await func(*args)
    raise AssertionError("unreachable")  # pragma: no cover
