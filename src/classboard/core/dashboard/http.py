"""
Async HTTP utilities with retry logic and exponential backoff.

Source fetches run on an httpx.AsyncClient. Transient failures (5xx,
timeouts, connection errors) are retried with exponential backoff and
jitter; 4xx responses are raised immediately so the caller can move on to
its next fallback path.

Example:
    >>> async with httpx.AsyncClient(base_url="http://localhost:5000") as client:
    ...     response = await retry_request(client, "GET", "/api/students")
    ...     data = response.json()

Configuration:
    - Default retries: 2 attempts
    - Default base delay: 0.5 seconds
    - Default multiplier: 2.0x per retry
    - Jitter: Random variance of ±20% added to delay
"""

import asyncio
import functools
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryConfig:
    """
    Configuration for retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts (default: 2)
        base_delay: Initial delay in seconds before first retry (default: 0.5)
        multiplier: Exponential backoff multiplier (default: 2.0)
        jitter: Whether to add jitter to delays (default: True)
        jitter_ratio: Random variance ratio for jitter (default: 0.2 = ±20%)
    """

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 0.5,
        multiplier: float = 2.0,
        jitter: bool = True,
        jitter_ratio: float = 0.2,
    ) -> None:
        """
        Initialize retry configuration.

        Raises:
            ValueError: If parameters are invalid
        """
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if base_delay <= 0:
            raise ValueError("base_delay must be positive")
        if multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")
        if not 0.0 <= jitter_ratio <= 1.0:
            raise ValueError("jitter_ratio must be between 0.0 and 1.0")

        self.max_retries = max_retries
        self.base_delay = base_delay
        self.multiplier = multiplier
        self.jitter = jitter
        self.jitter_ratio = jitter_ratio

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for a given retry attempt.

        Uses exponential backoff: delay = base_delay * (multiplier ^ attempt)

        Args:
            attempt: Retry attempt number (0-indexed)

        Returns:
            Delay in seconds before next retry
        """
        delay = self.base_delay * (self.multiplier**attempt)

        if self.jitter:
            variance = delay * self.jitter_ratio
            delay = delay + random.uniform(-variance, variance)

        return max(0.0, delay)


def is_retryable_error(exception: BaseException) -> bool:
    """
    Determine if an exception represents a transient, retryable error.

    Retryable: 5xx responses, timeouts, connection and other request errors.
    Not retryable: 4xx responses and anything that is not an httpx error.

    Args:
        exception: Exception to check

    Returns:
        True if the error is retryable, False otherwise
    """
    # HTTPStatusError first: it is also an HTTPError
    if isinstance(exception, httpx.HTTPStatusError):
        return 500 <= exception.response.status_code < 600

    if isinstance(exception, httpx.TimeoutException):
        return True

    if isinstance(exception, httpx.RequestError):
        return True

    if isinstance(exception, httpx.HTTPError):
        return True

    return False


def with_retry(
    max_retries: int = 2,
    base_delay: float = 0.5,
    multiplier: float = 2.0,
    jitter: bool = True,
    jitter_ratio: float = 0.2,
    before_attempt: Callable[[], None] | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator adding retry with exponential backoff to a coroutine function.

    Args:
        max_retries: Maximum number of retry attempts (default: 2)
        base_delay: Initial delay in seconds (default: 0.5)
        multiplier: Exponential backoff multiplier (default: 2.0)
        jitter: Whether to add jitter to delays (default: True)
        jitter_ratio: Random variance ratio for jitter (default: 0.2)
        before_attempt: Called before every attempt; may raise to abort
            (used to honor cycle cancellation between retries)

    Returns:
        Decorator wrapping the coroutine function with retry logic

    Example:
        >>> @with_retry(max_retries=3)
        ... async def fetch(client: httpx.AsyncClient) -> dict:
        ...     response = await client.get("/api/events")
        ...     response.raise_for_status()
        ...     return response.json()
    """
    config = RetryConfig(
        max_retries=max_retries,
        base_delay=base_delay,
        multiplier=multiplier,
        jitter=jitter,
        jitter_ratio=jitter_ratio,
    )

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            func_name = getattr(func, "__name__", repr(func))

            for attempt in range(config.max_retries + 1):
                if before_attempt is not None:
                    before_attempt()
                try:
                    return await func(*args, **kwargs)

                except Exception as e:
                    if not is_retryable_error(e):
                        logger.debug(
                            f"{func_name}: Non-retryable error on attempt {attempt + 1}: {e}"
                        )
                        raise

                    if attempt >= config.max_retries:
                        logger.warning(
                            f"{func_name}: Max retries ({config.max_retries}) exceeded: {e}"
                        )
                        raise

                    delay = config.calculate_delay(attempt)
                    logger.info(
                        f"{func_name}: Retry attempt {attempt + 1}/{config.max_retries} "
                        f"after {delay:.2f}s due to: {e}"
                    )
                    await asyncio.sleep(delay)

            raise RuntimeError("Retry loop completed without success or exception")

        return wrapper

    return decorator


async def retry_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    max_retries: int = 2,
    base_delay: float = 0.5,
    multiplier: float = 2.0,
    before_attempt: Callable[[], None] | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """
    Make an HTTP request with automatic retry logic.

    Args:
        client: Async client carrying base URL, timeout and headers
        method: HTTP method (GET, POST, etc.)
        url: URL or path to request
        max_retries: Maximum number of retry attempts (default: 2)
        base_delay: Initial delay in seconds (default: 0.5)
        multiplier: Exponential backoff multiplier (default: 2.0)
        before_attempt: Hook run before each attempt
        **kwargs: Additional arguments passed to client.request()

    Returns:
        HTTP response object (always a success status)

    Raises:
        httpx.HTTPStatusError: On 4xx errors or after max retries on 5xx
        httpx.TimeoutException: After max retries on timeout
        httpx.RequestError: After max retries on network errors
    """

    @with_retry(
        max_retries=max_retries,
        base_delay=base_delay,
        multiplier=multiplier,
        before_attempt=before_attempt,
    )
    async def _make_request() -> httpx.Response:
        response = await client.request(method, url, **kwargs)
        response.raise_for_status()
        return response

    return await _make_request()


__all__ = [
    "RetryConfig",
    "with_retry",
    "retry_request",
    "is_retryable_error",
]
