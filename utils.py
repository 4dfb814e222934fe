"""
Utility functions for the gift box catalog backend.
Includes retry logic and batching helpers.
"""
import asyncio
import functools
import logging
import random
from typing import Callable, Iterator, List, Sequence, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_async(
    retry_on: Tuple[Type[Exception], ...],
    max_retries: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    exponential_backoff: bool = True,
    jitter: bool = True,
):
    """
    Decorator for async functions that retries on failure.

    Args:
        retry_on: Tuple of exception types to retry on; anything else propagates at once
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_backoff: Whether to use exponential backoff
        jitter: Whether to add random jitter to delays
    """
    if not retry_on:
        raise ValueError("retry_on must name at least one exception type")

    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    if attempt >= max_retries:
                        raise

                    if exponential_backoff:
                        delay = min(base_delay * (2 ** attempt), max_delay)
                    else:
                        delay = base_delay

                    if jitter:
                        delay = delay * (0.5 + random.random())  # 50-150% of delay

                    logger.warning(
                        f"Retry {attempt + 1}/{max_retries} for {func.__name__} "
                        f"after {delay:.2f}s due to: {type(e).__name__}: {str(e)[:100]}"
                    )
                    await asyncio.sleep(delay)

        return wrapper
    return decorator


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Consecutive slices of at most `size` items, in order."""
    if size < 1:
        raise ValueError("size must be at least 1")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])
