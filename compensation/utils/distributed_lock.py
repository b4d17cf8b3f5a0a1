"""
Distributed lock.

Keeps two workers from running the same batch at once. Built on the
redis-py Lock, which stores a random token and releases only if the token
still matches.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as redis
from loguru import logger
from redis.exceptions import LockError


class DistributedLock:
    """Non-blocking Redis lock for batch jobs."""

    def __init__(self, redis_client: redis.Redis, prefix: str = "lock") -> None:
        """
        Initialize lock helper.

        Args:
            redis_client: Async Redis client
            prefix: Key prefix for all locks
        """
        self.redis_client = redis_client
        self.prefix = prefix

    @asynccontextmanager
    async def lock(self, key: str, timeout: int) -> AsyncIterator[bool]:
        """
        Try to take a lock for the duration of the block.

        Yields False instead of waiting when another holder has the key,
        so the caller can skip its run.

        Args:
            key: Lock name (without prefix)
            timeout: Seconds before the lock expires on its own

        Yields:
            True if the lock is held
        """
        name = f"{self.prefix}:{key}"
        lock = self.redis_client.lock(name, timeout=timeout, blocking=False)
        acquired = await lock.acquire()

        if not acquired:
            logger.warning(f"Lock {name} is held elsewhere, skipping")
            yield False
            return

        try:
            yield True
        finally:
            try:
                await lock.release()
            except LockError:
                # Expired before release; another holder may own it now
                logger.warning(f"Lock {name} expired before release")
