"""
Chunked transformation that yields to the event loop between slices.

Formatting a few thousand notifications in one go would stall every other
coroutine (polls, rendering, cancellation). map_chunked bounds each
synchronous block to one slice.
"""

import asyncio
from collections.abc import Callable, Sequence
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_CHUNK_SIZE = 150


async def map_chunked(
    items: Sequence[T],
    fn: Callable[[T], R],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> list[R]:
    """
    Apply fn to every item, chunk_size items at a time.

    Control is yielded (a zero-duration sleep) between slices, never after
    the last one. Output order matches input order. An exception raised
    by fn propagates and the whole operation fails; callers own the
    fallback.

    Args:
        items: Items to transform
        fn: Synchronous transformation
        chunk_size: Items per slice (default: 150)

    Returns:
        Transformed items in input order

    Raises:
        ValueError: If chunk_size < 1

    Example:
        >>> views = await map_chunked(raw_notifications, format_notification, 150)
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

    results: list[R] = []
    for start in range(0, len(items), chunk_size):
        if start > 0:
            await asyncio.sleep(0)
        results.extend(fn(item) for item in items[start : start + chunk_size])
    return results
