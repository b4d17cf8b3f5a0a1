"""
Database decorators for automatic rollback and retry.

Provides decorators for async service methods that use SQLAlchemy sessions.
"""

import asyncio
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.exc import OperationalError

from compensation.utils.exceptions import TransientError


T = TypeVar("T")


def retry_on_conflict(
    attempts: int = 3, base_delay: float = 0.05
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Retry a unit of work on serialization conflicts.

    The wrapped method must belong to an object with a ``session``
    attribute and must be safe to re-run from scratch: every operation in
    this engine is idempotent (ledger idempotency keys, yield day markers),
    so a rolled-back attempt can simply be replayed.

    Usage:
        @retry_on_conflict(attempts=3)
        async def execute(self, command):
            ...

    Args:
        attempts: Total attempts including the first
        base_delay: Initial backoff in seconds (doubled each retry)

    Returns:
        Decorator
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            delay = base_delay
            for attempt in range(1, attempts + 1):
                try:
                    return await func(self, *args, **kwargs)
                except (OperationalError, TransientError) as e:
                    try:
                        await self.session.rollback()
                    except Exception as rollback_error:
                        logger.error(
                            f"Failed to rollback in {func.__name__}: {rollback_error}",
                            exc_info=True
                        )
                    if attempt == attempts:
                        logger.error(
                            f"{func.__name__} failed after {attempts} attempts",
                            extra={"error": str(e)},
                        )
                        raise TransientError(
                            f"{func.__name__} conflicted {attempts} times: {e}"
                        ) from e
                    logger.warning(
                        f"Retrying {func.__name__} after conflict",
                        extra={"attempt": attempt, "error": str(e)},
                    )
                    await asyncio.sleep(delay)
                    delay *= 2
            raise AssertionError("unreachable")

        return wrapper

    return decorator
