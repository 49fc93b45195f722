"""Tests for the SQL store implementations against mocked sessions."""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from tradewatch.errors import CheckpointStoreError
from tradewatch.models.alert import AlertNotification, UserAlert
from tradewatch.models.trade import StockTrade
from tradewatch.schemas.trade import TradeCandidate
from tradewatch.storage.alerts import SqlAlertStore
from tradewatch.storage.checkpoints import SqlCheckpointStore, fresh_progress
from tradewatch.storage.trades import SqlTradeStore

NOW = datetime(2024, 3, 2, 12, 0, tzinfo=timezone.utc)


def _session_factory():
    """A session factory whose sessions and transactions are mocks."""
    session = MagicMock()
    session.execute = AsyncMock()
    session.scalars = AsyncMock()
    session.scalar = AsyncMock()
    session.begin.return_value.__aenter__ = AsyncMock(return_value=None)
    session.begin.return_value.__aexit__ = AsyncMock(return_value=False)

    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=session)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory, session


def _scalars_first(value):
    result = MagicMock()
    result.first.return_value = value
    return result


class TestSqlCheckpointStore:
    @pytest.mark.asyncio
    async def test_update_applies_mutation(self):
        factory, session = _session_factory()
        row = fresh_progress("senate")
        select_result = MagicMock()
        select_result.scalar_one.return_value = row
        session.execute.side_effect = [MagicMock(), select_result]

        progress = await SqlCheckpointStore(factory).update(
            "senate", lambda p: setattr(p, "last_processed_index", 100)
        )

        assert progress is row
        assert progress.last_processed_index == 100
        assert session.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_database_errors_are_wrapped(self):
        factory, session = _session_factory()
        session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))

        with pytest.raises(CheckpointStoreError):
            await SqlCheckpointStore(factory).update("senate", lambda p: None)
        with pytest.raises(CheckpointStoreError):
            await SqlCheckpointStore(factory).load("senate")


class TestSqlTradeStore:
    CANDIDATE = TradeCandidate(
        trader_kind="legislator",
        trader_id=1,
        ticker_symbol="AAPL",
        transaction_date=date(2024, 3, 1),
        transaction_type="buy",
    )

    @pytest.mark.asyncio
    async def test_inserted_row_is_created(self):
        factory, session = _session_factory()
        inserted = StockTrade(id=1)
        session.scalars.return_value = _scalars_first(inserted)

        trade, created = await SqlTradeStore(factory).insert_if_absent(self.CANDIDATE)

        assert created is True
        assert trade is inserted
        session.scalar.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_conflict_loads_existing_row(self):
        factory, session = _session_factory()
        existing = StockTrade(id=7)
        session.scalars.return_value = _scalars_first(None)
        session.scalar.return_value = existing

        trade, created = await SqlTradeStore(factory).insert_if_absent(self.CANDIDATE)

        assert created is False
        assert trade is existing


class TestSqlAlertStoreRecordTrigger:
    def _alert(self) -> UserAlert:
        alert = UserAlert(id=3, user_id=1, alert_type="stock", ticker_symbol="AAPL", status="active")
        alert.last_triggered_at = None
        return alert

    @pytest.mark.asyncio
    async def test_first_trigger_stamps_alert(self):
        factory, session = _session_factory()
        notification = AlertNotification(id=11, alert_id=3, trade_id=5)
        session.scalars.return_value = _scalars_first(notification)
        alert = self._alert()

        result = await SqlAlertStore(factory).record_trigger(alert, StockTrade(id=5), "msg", NOW)

        assert result is notification
        assert alert.last_triggered_at == NOW
        session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_repeat_trigger_is_a_no_op(self):
        factory, session = _session_factory()
        session.scalars.return_value = _scalars_first(None)
        alert = self._alert()

        result = await SqlAlertStore(factory).record_trigger(alert, StockTrade(id=5), "msg", NOW)

        assert result is None
        assert alert.last_triggered_at is None
        session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_mark_read_with_no_ids_skips_database(self):
        factory, session = _session_factory()
        assert await SqlAlertStore(factory).mark_read(1, [], NOW) == 0
        factory.assert_not_called()
