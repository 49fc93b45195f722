"""Celery tasks for scheduled trade syncs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from tradewatch.config import settings
from tradewatch.db.redis import get_redis
from tradewatch.errors import ConcurrentSyncError
from tradewatch.ingestion.fmp_client import FMPPageSource
from tradewatch.schemas.sync import SyncOptions, SyncProgressEvent, SyncResult
from tradewatch.sync.guard import single_flight
from tradewatch.sync.pipeline import build_orchestrator
from tradewatch.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)

# Log progress roughly every this many records
PROGRESS_LOG_EVERY = 250


def _get_async_session():
    engine = create_async_engine(settings.database_url, pool_size=5)
    return async_sessionmaker(engine, expire_on_commit=False), engine


def _log_progress(event: SyncProgressEvent) -> None:
    if event.current % PROGRESS_LOG_EVERY == 0 or event.current == event.total:
        logger.info(
            "[%s] %d/%d records (%.0f%%)",
            event.source_label,
            event.current,
            event.total,
            event.percent,
        )


async def _run_sync(source_types: Sequence[str], force_update: bool = False) -> list[dict]:
    """Sync each source type under the cross-worker lock.

    A scheduled run always starts a new pass: a checkpoint left completed by
    the previous run is reset first, while an interrupted one is resumed.
    """
    factory, engine = _get_async_session()
    source = FMPPageSource()
    redis = get_redis()
    orchestrator = build_orchestrator(factory, source)
    options = SyncOptions(force_update=force_update)
    results: list[SyncResult] = []
    try:
        for source_type in source_types:
            try:
                async with single_flight(redis, source_type):
                    await orchestrator.reset_progress(source_type, only_if_completed=True)
                    result = await orchestrator.run_sync(source_type, options, _log_progress)
            except ConcurrentSyncError as e:
                logger.warning("Skipping %s: %s", source_type, e)
                result = SyncResult(source_type=source_type, success=False, errors=[str(e)])
            results.append(result)
            logger.info(
                "[%s] created=%d updated=%d skipped=%d errors=%d",
                source_type,
                result.created,
                result.updated,
                result.skipped,
                len(result.errors),
            )
    finally:
        await source.close()
        await redis.aclose()
        await engine.dispose()
    return [r.model_dump() for r in results]


@celery_app.task(name="tradewatch.tasks.sync_tasks.sync_congressional_trades")
def sync_congressional_trades(force_update: bool = False):
    """Sync Senate then House disclosures."""
    return asyncio.run(_run_sync(("senate", "house"), force_update))


@celery_app.task(name="tradewatch.tasks.sync_tasks.sync_insider_trades")
def sync_insider_trades(force_update: bool = False):
    return asyncio.run(_run_sync(("insiders",), force_update))
