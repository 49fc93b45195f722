"""Tests for trade evaluation and alert triggering."""

from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from tradewatch.alerts.engine import AlertEngine
from tradewatch.models.alert import UserAlert
from tradewatch.models.trade import StockTrade
from tradewatch.schemas.alert import PatternCriteria, PatternFields, PoliticianCriteria, StockCriteria

NOW = datetime(2024, 3, 2, 12, 0, tzinfo=timezone.utc)


def _trade(**overrides) -> StockTrade:
    fields = {
        "id": 100,
        "trader_kind": "legislator",
        "trader_id": 7,
        "ticker_symbol": "AAPL",
        "transaction_date": date(2024, 3, 1),
        "transaction_type": "buy",
        "estimated_value": Decimal("32500"),
    }
    fields.update(overrides)
    return StockTrade(**fields)


async def _add_alert(store, criteria, user_id=1, status="active") -> UserAlert:
    alert = UserAlert(user_id=user_id, status=status)
    alert.apply_criteria(criteria)
    return await store.add_alert(alert)


@pytest.fixture
def engine(alert_store):
    return AlertEngine(alert_store, clock=lambda: NOW)


class TestEvaluateTrade:
    @pytest.mark.asyncio
    async def test_matching_alerts_trigger(self, engine, alert_store):
        politician = await _add_alert(alert_store, PoliticianCriteria(politician_id=7))
        stock = await _add_alert(alert_store, StockCriteria(ticker_symbol="AAPL"))
        pattern = await _add_alert(
            alert_store, PatternCriteria(pattern=PatternFields(min_value=10000, transaction_type="buy"))
        )
        await _add_alert(alert_store, StockCriteria(ticker_symbol="MSFT"))

        report = await engine.evaluate_trade(_trade(), "Nancy Pelosi")

        assert report.candidates == 3
        assert sorted(report.triggered) == sorted([politician.id, stock.id, pattern.id])
        assert report.errors == []
        assert len(alert_store.notifications) == 3
        assert all(alert_store.alerts[i].last_triggered_at == NOW for i in report.triggered)

    @pytest.mark.asyncio
    async def test_non_matching_pattern_not_triggered(self, engine, alert_store):
        alert = await _add_alert(
            alert_store, PatternCriteria(pattern=PatternFields(min_value=10000, max_value=50000))
        )

        report = await engine.evaluate_trade(_trade(estimated_value=Decimal("5000")))

        assert report.candidates == 1
        assert report.triggered == []
        assert alert_store.alerts[alert.id].last_triggered_at is None

    @pytest.mark.asyncio
    async def test_single_trigger_per_alert_and_trade(self, engine, alert_store):
        alert = await _add_alert(alert_store, StockCriteria(ticker_symbol="AAPL"))
        trade = _trade()

        first = await engine.evaluate_trade(trade)
        second = await engine.evaluate_trade(trade)

        assert first.triggered == [alert.id]
        assert second.triggered == []
        assert second.already_notified == [alert.id]
        assert len(alert_store.notifications) == 1

    @pytest.mark.asyncio
    async def test_paused_and_deleted_alerts_ignored(self, engine, alert_store):
        await _add_alert(alert_store, StockCriteria(ticker_symbol="AAPL"), status="paused")
        await _add_alert(alert_store, PoliticianCriteria(politician_id=7), status="deleted")

        report = await engine.evaluate_trade(_trade())

        assert report.candidates == 0
        assert alert_store.notifications == []

    @pytest.mark.asyncio
    async def test_failing_alert_does_not_block_others(self, engine, alert_store):
        broken = await _add_alert(alert_store, StockCriteria(ticker_symbol="AAPL"), user_id=1)
        healthy = await _add_alert(alert_store, StockCriteria(ticker_symbol="AAPL"), user_id=2)
        alert_store.failing_alert_ids.add(broken.id)

        report = await engine.evaluate_trade(_trade())

        assert report.triggered == [healthy.id]
        assert len(report.errors) == 1
        assert report.errors[0].startswith(f"alert {broken.id}:")
        assert [n.alert_id for n in alert_store.notifications] == [healthy.id]

    @pytest.mark.asyncio
    async def test_candidate_lookup_failure_is_reported(self):
        store = MagicMock()
        store.active_alerts_for_politician = AsyncMock(side_effect=RuntimeError("db down"))

        report = await AlertEngine(store, clock=lambda: NOW).evaluate_trade(_trade())

        assert report.candidates == 0
        assert report.errors == ["candidate selection failed: db down"]

    @pytest.mark.asyncio
    async def test_notification_message(self, engine, alert_store):
        await _add_alert(alert_store, StockCriteria(ticker_symbol="AAPL"))

        await engine.evaluate_trade(_trade(), "Nancy Pelosi")

        notification = alert_store.notifications[0]
        assert notification.message == (
            "New trade in AAPL: Nancy Pelosi bought AAPL (est. $32,500) on 2024-03-01"
        )
        assert notification.delivery_status == "pending"
        assert notification.created_at == NOW
