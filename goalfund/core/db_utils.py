"""
Database utilities for connection management and error handling
"""
import asyncio
import functools
import logging
from typing import Callable, Any, TypeVar, cast, Awaitable, Optional

from goalfund.core.config import settings
from goalfund.core.exceptions import ConcurrencyConflict

logger = logging.getLogger(__name__)

# Define a type variable for the return type of the decorated function
T = TypeVar('T')

CONNECTION_ERROR_NAMES = (
    "ConnectionError", "OperationalError",
    "ConnectionDoesNotExistError", "ConnectionRefusedError",
)


def is_connection_error(exc: BaseException) -> bool:
    error_name = type(exc).__name__
    return any(err in error_name for err in CONNECTION_ERROR_NAMES)


def with_db_retry(
    max_retries: Optional[int] = None,
    retry_delay: Optional[float] = None
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator that retries database reads on connection errors.

    Args:
        max_retries: Maximum number of retries before giving up (defaults to DB_MAX_RETRIES)
        retry_delay: Base delay between retries in seconds (defaults to DB_RETRY_DELAY)

    Returns:
        Decorated function with retry logic
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            limit = settings.DB_MAX_RETRIES if max_retries is None else max_retries
            delay_base = settings.DB_RETRY_DELAY if retry_delay is None else retry_delay
            retries = 0

            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not is_connection_error(e) or retries >= limit:
                        if retries:
                            logger.error(f"Database operation failed after {retries} retries: {e}")
                        raise
                    retries += 1
                    delay = delay_base * (2 ** (retries - 1))  # Exponential backoff
                    logger.warning(
                        f"Database connection error: {str(e)}. "
                        f"Retrying in {delay:.2f}s... (Attempt {retries}/{limit})"
                    )
                    await asyncio.sleep(delay)

        return cast(Callable[..., Awaitable[T]], wrapper)

    return decorator


def with_conflict_retry(
    max_retries: Optional[int] = None
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator that re-runs a unit of work when it raises ConcurrencyConflict.

    The wrapped coroutine must re-read everything it depends on, so each
    attempt runs against fresh state. The last conflict propagates.
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            limit = settings.ALLOCATION_CONFLICT_RETRIES if max_retries is None else max_retries
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except ConcurrencyConflict as e:
                    if attempt >= limit:
                        logger.error(f"{func.__name__} still conflicting after {attempt} retries: {e.message}")
                        raise
                    attempt += 1
                    logger.warning(f"{func.__name__} hit a stale snapshot ({e.message}); retrying ({attempt}/{limit})")

        return cast(Callable[..., Awaitable[T]], wrapper)

    return decorator
