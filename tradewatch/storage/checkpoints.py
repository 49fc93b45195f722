"""Durable per-source-type sync progress."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tradewatch.errors import CheckpointStoreError
from tradewatch.models.sync import SyncProgress

logger = logging.getLogger(__name__)

ProgressMutation = Callable[[SyncProgress], None]


def fresh_progress(source_type: str) -> SyncProgress:
    now = datetime.now(timezone.utc)
    return SyncProgress(
        source_type=source_type,
        last_processed_index=0,
        total_records=0,
        created_count=0,
        updated_count=0,
        skipped_count=0,
        error_count=0,
        status="pending",
        started_at=now,
        updated_at=now,
        completed_at=None,
    )


def reset_fields(progress: SyncProgress) -> None:
    """Return a progress row to its pending, zero-count state."""
    blank = fresh_progress(progress.source_type)
    for field in (
        "last_processed_index",
        "total_records",
        "created_count",
        "updated_count",
        "skipped_count",
        "error_count",
        "status",
        "started_at",
        "completed_at",
    ):
        setattr(progress, field, getattr(blank, field))


class CheckpointStore(ABC):
    """Read-modify-write access to SyncProgress rows.

    ``update`` applies ``mutate`` to the current row inside a single
    transaction, creating the row on first use.
    """

    @abstractmethod
    async def load(self, source_type: str) -> SyncProgress: ...

    @abstractmethod
    async def update(self, source_type: str, mutate: ProgressMutation) -> SyncProgress: ...

    async def reset(self, source_type: str) -> SyncProgress:
        return await self.update(source_type, reset_fields)


class SqlCheckpointStore(CheckpointStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def load(self, source_type: str) -> SyncProgress:
        try:
            async with self._session_factory() as session, session.begin():
                return await self._get_or_create(session, source_type, for_update=False)
        except SQLAlchemyError as e:
            raise CheckpointStoreError(f"could not load progress for {source_type}: {e}") from e

    async def update(self, source_type: str, mutate: ProgressMutation) -> SyncProgress:
        try:
            async with self._session_factory() as session, session.begin():
                progress = await self._get_or_create(session, source_type, for_update=True)
                mutate(progress)
                progress.updated_at = datetime.now(timezone.utc)
            return progress
        except SQLAlchemyError as e:
            raise CheckpointStoreError(f"could not update progress for {source_type}: {e}") from e

    @staticmethod
    async def _get_or_create(
        session: AsyncSession, source_type: str, for_update: bool
    ) -> SyncProgress:
        stmt = pg_insert(SyncProgress.__table__).values(source_type=source_type, status="pending")
        stmt = stmt.on_conflict_do_nothing(index_elements=["source_type"])
        await session.execute(stmt)

        query = select(SyncProgress).where(SyncProgress.source_type == source_type)
        if for_update:
            query = query.with_for_update()
        result = await session.execute(query)
        return result.scalar_one()
