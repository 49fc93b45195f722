"""Resumable, checkpointed sync runs per source type."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from tradewatch.errors import CheckpointStoreError, ConcurrentSyncError
from tradewatch.ingestion.base import PageSource, fetch_all_pages
from tradewatch.logging_config import correlation_scope
from tradewatch.metrics import (
    sync_duration_seconds,
    sync_record_errors_total,
    sync_runs_total,
    trades_synced_total,
)
from tradewatch.models.sync import SyncProgress
from tradewatch.schemas.sync import (
    SOURCE_LABELS,
    SourceType,
    SyncBatchResult,
    SyncOptions,
    SyncProgressEvent,
    SyncResult,
)
from tradewatch.storage.checkpoints import CheckpointStore
from tradewatch.sync.writer import WriteOutcome

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[SyncProgressEvent], None]


class RecordProcessor(ABC):
    """Turns one raw record into a written trade."""

    @abstractmethod
    async def process(
        self, source_type: str, raw: dict[str, Any], force_update: bool
    ) -> WriteOutcome: ...


@dataclass
class _RunCounts:
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0

    @property
    def processed(self) -> int:
        return self.created + self.updated + self.skipped

    def add(self, action: str) -> None:
        setattr(self, action, getattr(self, action) + 1)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _begin_run(progress: SyncProgress) -> None:
    if progress.status == "pending" and progress.last_processed_index == 0:
        progress.started_at = datetime.now(timezone.utc)
    progress.status = "in_progress"
    progress.completed_at = None


def _mark_failed(progress: SyncProgress) -> None:
    progress.status = "failed"


class SyncOrchestrator:
    """Pulls every page of a source, then feeds records through the processor.

    With checkpoints enabled, progress is flushed every ``batch_size``
    records so an interrupted run resumes where it stopped. A completed
    checkpoint short-circuits further runs until ``reset_progress``.
    """

    def __init__(
        self,
        source: PageSource,
        processor: RecordProcessor,
        checkpoints: CheckpointStore | None = None,
    ) -> None:
        self.source = source
        self.processor = processor
        self.checkpoints = checkpoints
        self._running: set[str] = set()

    async def run_sync(
        self,
        source_type: SourceType,
        options: SyncOptions | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> SyncResult:
        options = options or SyncOptions()
        if options.use_checkpoints and self.checkpoints is None:
            raise ValueError("use_checkpoints requires a checkpoint store")
        if source_type in self._running:
            raise ConcurrentSyncError(source_type)

        self._running.add(source_type)
        started = time.monotonic()
        try:
            with correlation_scope():
                result = await self._run(source_type, options, on_progress, started)
        except Exception:
            sync_runs_total.labels(source=source_type, status="failed").inc()
            raise
        finally:
            self._running.discard(source_type)
            sync_duration_seconds.labels(source=source_type).observe(time.monotonic() - started)

        if result.short_circuited:
            status = "short_circuited"
        else:
            status = "completed" if result.success else "failed"
        sync_runs_total.labels(source=source_type, status=status).inc()
        return result

    async def sync_all(
        self,
        source_types: Sequence[SourceType] = ("senate", "house", "insiders"),
        options: SyncOptions | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> SyncBatchResult:
        """Run each source type in turn. A failed source does not stop the rest."""
        started = time.monotonic()
        results = []
        for source_type in source_types:
            results.append(await self.run_sync(source_type, options, on_progress))
        return SyncBatchResult(
            success=all(r.success for r in results),
            results=results,
            duration_ms=_elapsed_ms(started),
        )

    async def reset_progress(
        self, source_type: SourceType, only_if_completed: bool = False
    ) -> bool:
        """Return a source's checkpoint to pending. Returns True if it was reset."""
        if self.checkpoints is None:
            raise ValueError("no checkpoint store configured")
        if source_type in self._running:
            raise ConcurrentSyncError(source_type)
        if only_if_completed:
            progress = await self.checkpoints.load(source_type)
            if progress.status != "completed":
                return False
        await self.checkpoints.reset(source_type)
        logger.info("Reset sync progress for %s", source_type)
        return True

    async def _run(
        self,
        source_type: str,
        options: SyncOptions,
        on_progress: ProgressCallback | None,
        started: float,
    ) -> SyncResult:
        label = SOURCE_LABELS.get(source_type, source_type)
        checkpoints = self.checkpoints if options.use_checkpoints else None
        start_index = 0
        base = _RunCounts()

        try:
            if checkpoints is not None:
                progress = await checkpoints.load(source_type)
                if progress.status == "completed":
                    logger.info(
                        "%s sync already completed (%d records), skipping",
                        label,
                        progress.total_records,
                    )
                    return SyncResult(
                        source_type=source_type,
                        success=True,
                        processed=0,
                        created=progress.created_count,
                        updated=progress.updated_count,
                        skipped=progress.skipped_count,
                        duration_ms=_elapsed_ms(started),
                        resumed_from=progress.last_processed_index,
                        short_circuited=True,
                    )
                progress = await checkpoints.update(source_type, _begin_run)
                start_index = progress.last_processed_index
                base = _RunCounts(
                    created=progress.created_count,
                    updated=progress.updated_count,
                    skipped=progress.skipped_count,
                    errors=progress.error_count,
                )
                if start_index:
                    logger.info("Resuming %s sync from record %d", label, start_index)

            records = await fetch_all_pages(
                self.source, source_type, max_pages=options.max_pages, page_size=options.limit
            )
            logger.info("Fetched %d %s records", len(records), label)

            end = len(records)
            if checkpoints is not None:
                progress = await checkpoints.update(
                    source_type, lambda p: _record_total(p, len(records))
                )
                end = min(progress.total_records, len(records))
        except CheckpointStoreError:
            raise
        except Exception as e:
            logger.exception("%s sync failed before processing", label)
            await self._try_mark_failed(checkpoints, source_type)
            return SyncResult(
                source_type=source_type,
                success=False,
                errors=[f"{label} sync failed: {e}"],
                duration_ms=_elapsed_ms(started),
                resumed_from=start_index,
            )

        counts = _RunCounts()
        errors: list[str] = []
        index = start_index
        try:
            since_flush = 0
            for index in range(start_index, end):
                try:
                    outcome = await self.processor.process(
                        source_type, records[index], options.force_update
                    )
                except Exception as e:
                    message = f"Error processing {label} record {index + 1}: {e}"
                    logger.warning(message)
                    errors.append(message)
                    counts.errors += 1
                    sync_record_errors_total.labels(source=source_type).inc()
                else:
                    counts.add(outcome.action)
                    trades_synced_total.labels(source=source_type, action=outcome.action).inc()

                self._report(on_progress, index + 1, end, label)
                since_flush += 1
                if checkpoints is not None and since_flush >= options.batch_size:
                    await checkpoints.update(
                        source_type, _checkpoint_mutation(index + 1, base, counts)
                    )
                    since_flush = 0

            final_index = max(start_index, end)
            if checkpoints is not None:
                await checkpoints.update(
                    source_type, _checkpoint_mutation(final_index, base, counts, complete=True)
                )
        except Exception:
            logger.exception("%s sync aborted at record %d", label, index + 1)
            await self._try_mark_failed(checkpoints, source_type)
            raise

        logger.info(
            "%s sync finished: %d created, %d updated, %d skipped, %d errors",
            label,
            counts.created,
            counts.updated,
            counts.skipped,
            counts.errors,
        )
        return SyncResult(
            source_type=source_type,
            success=not errors,
            processed=counts.processed,
            created=counts.created,
            updated=counts.updated,
            skipped=counts.skipped,
            errors=errors,
            duration_ms=_elapsed_ms(started),
            resumed_from=start_index,
        )

    @staticmethod
    def _report(
        on_progress: ProgressCallback | None, current: int, total: int, label: str
    ) -> None:
        if on_progress is None:
            return
        try:
            on_progress(SyncProgressEvent(current=current, total=total, source_label=label))
        except Exception:
            logger.exception("Progress callback raised; continuing")

    @staticmethod
    async def _try_mark_failed(checkpoints: CheckpointStore | None, source_type: str) -> None:
        if checkpoints is None:
            return
        try:
            await checkpoints.update(source_type, _mark_failed)
        except CheckpointStoreError:
            logger.exception("Could not mark %s sync as failed", source_type)


def _record_total(progress: SyncProgress, fetched: int) -> None:
    # The first run of a pass fixes the total; resumed runs keep it
    if progress.last_processed_index == 0 and progress.total_records == 0:
        progress.total_records = fetched


def _checkpoint_mutation(
    index: int, base: _RunCounts, counts: _RunCounts, complete: bool = False
) -> Callable[[SyncProgress], None]:
    def mutate(progress: SyncProgress) -> None:
        progress.last_processed_index = max(progress.last_processed_index, index)
        progress.created_count = base.created + counts.created
        progress.updated_count = base.updated + counts.updated
        progress.skipped_count = base.skipped + counts.skipped
        progress.error_count = base.errors + counts.errors
        if complete:
            if progress.total_records != progress.last_processed_index:
                logger.warning(
                    "%s total changed from %d to %d during the pass",
                    progress.source_type,
                    progress.total_records,
                    progress.last_processed_index,
                )
                progress.total_records = progress.last_processed_index
            progress.status = "completed"
            progress.completed_at = datetime.now(timezone.utc)

    return mutate
