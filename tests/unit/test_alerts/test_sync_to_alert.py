"""Sync a disclosure feed end to end and check the alerts it raises."""

import pytest

from tests.fakes import FakePageSource, build_orchestrator
from tradewatch.alerts.service import AlertService
from tradewatch.schemas.sync import SyncOptions


def _aapl_house_trade() -> dict:
    return {
        "symbol": "AAPL",
        "transactionDate": "2024-03-01",
        "disclosureDate": "2024-03-05",
        "firstName": "Nancy",
        "lastName": "Pelosi",
        "office": "Nancy Pelosi",
        "district": "CA11",
        "assetDescription": "Apple Inc.",
        "type": "Purchase",
        "amount": "$15,001 - $50,000",
    }


@pytest.fixture
def source():
    return FakePageSource({"house": [_aapl_house_trade()]})


@pytest.fixture
def orchestrator(source, checkpoint_store, reference_store, trade_store, alert_store):
    return build_orchestrator(source, checkpoint_store, reference_store, trade_store, alert_store)


class TestStockAlertEndToEnd:
    @pytest.mark.asyncio
    async def test_new_trade_triggers_exactly_once(
        self, orchestrator, alert_store, reference_store, trade_store
    ):
        alert_store.add_user(1)
        reference_store.seed_ticker("AAPL", "Apple Inc.")
        service = AlertService(alert_store, reference_store)
        alert = (await service.create_alert(1, {"alert_type": "stock", "ticker_symbol": "AAPL"})).unwrap()

        result = await orchestrator.run_sync("house", SyncOptions(limit=50, max_pages=1))

        assert result.created == 1
        trade = next(iter(trade_store.trades.values()))
        assert len(alert_store.notifications) == 1
        notification = alert_store.notifications[0]
        assert (notification.alert_id, notification.trade_id, notification.user_id) == (alert.id, trade.id, 1)
        assert notification.message == (
            "New trade in AAPL: Nancy Pelosi bought AAPL (est. $32,500) on 2024-03-01"
        )
        assert alert_store.alerts[alert.id].last_triggered_at is not None

    @pytest.mark.asyncio
    async def test_resync_does_not_retrigger(self, orchestrator, alert_store, reference_store):
        alert_store.add_user(1)
        reference_store.seed_ticker("AAPL", "Apple Inc.")
        service = AlertService(alert_store, reference_store)
        await service.create_alert(1, {"alert_type": "stock", "ticker_symbol": "AAPL"})
        options = SyncOptions(limit=50, max_pages=1)

        await orchestrator.run_sync("house", options)
        await orchestrator.reset_progress("house")
        forced = await orchestrator.run_sync("house", options.model_copy(update={"force_update": True}))

        assert forced.updated == 1
        assert len(alert_store.notifications) == 1

    @pytest.mark.asyncio
    async def test_paused_alert_is_silent(self, orchestrator, alert_store, reference_store):
        alert_store.add_user(1)
        reference_store.seed_ticker("AAPL", "Apple Inc.")
        service = AlertService(alert_store, reference_store)
        alert = (await service.create_alert(1, {"alert_type": "stock", "ticker_symbol": "AAPL"})).unwrap()
        await service.toggle_alert(1, alert.id)

        await orchestrator.run_sync("house", SyncOptions(limit=50, max_pages=1))

        assert alert_store.notifications == []
