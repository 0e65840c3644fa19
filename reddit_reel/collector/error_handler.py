"""Retry logic with exponential backoff for network-bound operations."""

import asyncio
import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Awaitable, Callable, Tuple, Type, TypeVar, cast

logger = logging.getLogger(__name__)

T = TypeVar("T")
AsyncFunc = Callable[..., Awaitable[T]]


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently to retry a failing call."""

    max_retries: int = 5
    initial_backoff: float = 1.0
    max_backoff: float = 32.0
    backoff_factor: float = 2.0
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)


NO_RETRY = RetryPolicy(max_retries=0)


async def call_with_backoff(policy: RetryPolicy, func: AsyncFunc[T], *args: Any, **kwargs: Any) -> T:
    """
    Await ``func(*args, **kwargs)``, retrying errors listed in ``policy.retry_on``.

    Errors of other types propagate immediately. After ``policy.max_retries``
    retries the last error propagates.
    """
    retries = 0
    backoff = policy.initial_backoff

    while True:
        try:
            return await func(*args, **kwargs)
        except policy.retry_on as e:
            if retries >= policy.max_retries:
                if policy.max_retries:
                    logger.error(f"Max retries ({policy.max_retries}) exceeded: {e}")
                raise

            logger.warning(
                f"Error: {e}. "
                f"Retrying in {backoff:.2f}s ({retries+1}/{policy.max_retries})"
            )
            await asyncio.sleep(backoff)
            retries += 1
            backoff = min(backoff * policy.backoff_factor, policy.max_backoff)


def with_exponential_backoff(
    max_retries: int = 5,
    initial_backoff: float = 1.0,
    max_backoff: float = 32.0,
    backoff_factor: float = 2.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable[[AsyncFunc[T]], AsyncFunc[T]]:
    """
    Decorator for retrying async functions with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts
        initial_backoff: Initial backoff time in seconds
        max_backoff: Maximum backoff time in seconds
        backoff_factor: Multiplier for backoff time between retries
        retry_on: Exception types that trigger a retry

    Returns:
        Decorator function
    """
    policy = RetryPolicy(
        max_retries=max_retries,
        initial_backoff=initial_backoff,
        max_backoff=max_backoff,
        backoff_factor=backoff_factor,
        retry_on=retry_on,
    )

    def decorator(func: AsyncFunc[T]) -> AsyncFunc[T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await call_with_backoff(policy, func, *args, **kwargs)

        return cast(AsyncFunc[T], wrapper)
    return decorator
