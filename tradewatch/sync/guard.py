"""Cross-process single-flight lock for sync runs."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from redis.exceptions import LockError

from tradewatch.config import settings
from tradewatch.errors import ConcurrentSyncError

logger = logging.getLogger(__name__)


def lock_name(source_type: str) -> str:
    return f"tradewatch:sync-lock:{source_type}"


@asynccontextmanager
async def single_flight(
    redis: aioredis.Redis, source_type: str, timeout: int | None = None
) -> AsyncIterator[None]:
    """Hold the sync lock for ``source_type`` or raise ConcurrentSyncError.

    The lock expires after ``timeout`` seconds so a crashed worker cannot
    block the source forever.
    """
    lock = redis.lock(
        lock_name(source_type),
        timeout=timeout or settings.sync_lock_timeout_seconds,
        blocking=False,
    )
    if not await lock.acquire():
        raise ConcurrentSyncError(source_type)
    try:
        yield
    finally:
        try:
            await lock.release()
        except LockError:
            logger.warning("Sync lock for %s expired before release", source_type)
