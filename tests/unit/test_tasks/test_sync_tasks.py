"""Tests for the scheduled sync tasks."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tradewatch.errors import ConcurrentSyncError
from tradewatch.schemas.sync import SyncResult
from tradewatch.tasks import sync_tasks
from tradewatch.tasks.celery_app import celery_app


class _Lock:
    def __init__(self, error=None):
        self.error = error

    async def __aenter__(self):
        if self.error:
            raise self.error

    async def __aexit__(self, *exc):
        return False


class TestSchedule:
    def test_beat_tasks_are_registered(self):
        for entry in celery_app.conf.beat_schedule.values():
            assert entry["task"] in celery_app.tasks


class TestRunSync:
    @pytest.mark.asyncio
    async def test_runs_each_source_and_cleans_up(self):
        orchestrator = MagicMock()
        orchestrator.reset_progress = AsyncMock(return_value=True)
        orchestrator.run_sync = AsyncMock(
            side_effect=lambda source_type, *args: SyncResult(source_type=source_type, success=True, created=1)
        )
        engine = MagicMock(dispose=AsyncMock())
        source = MagicMock(close=AsyncMock())
        redis = MagicMock(aclose=AsyncMock())

        with patch.object(sync_tasks, "_get_async_session", return_value=(MagicMock(), engine)), \
                patch.object(sync_tasks, "FMPPageSource", return_value=source), \
                patch.object(sync_tasks, "get_redis", return_value=redis), \
                patch.object(sync_tasks, "build_orchestrator", return_value=orchestrator), \
                patch.object(sync_tasks, "single_flight", side_effect=lambda *a: _Lock()):
            results = await sync_tasks._run_sync(("senate", "house"))

        assert [r["source_type"] for r in results] == ["senate", "house"]
        assert all(r["success"] for r in results)
        orchestrator.reset_progress.assert_any_await("senate", only_if_completed=True)
        source.close.assert_awaited_once()
        redis.aclose.assert_awaited_once()
        engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_locked_source_is_reported_not_raised(self):
        orchestrator = MagicMock()
        orchestrator.reset_progress = AsyncMock()
        orchestrator.run_sync = AsyncMock()

        with patch.object(sync_tasks, "_get_async_session", return_value=(MagicMock(), MagicMock(dispose=AsyncMock()))), \
                patch.object(sync_tasks, "FMPPageSource", return_value=MagicMock(close=AsyncMock())), \
                patch.object(sync_tasks, "get_redis", return_value=MagicMock(aclose=AsyncMock())), \
                patch.object(sync_tasks, "build_orchestrator", return_value=orchestrator), \
                patch.object(
                    sync_tasks, "single_flight", side_effect=lambda *a: _Lock(ConcurrentSyncError("insiders"))
                ):
            results = await sync_tasks._run_sync(("insiders",))

        assert results[0]["success"] is False
        assert "already running" in results[0]["errors"][0]
        orchestrator.run_sync.assert_not_awaited()
