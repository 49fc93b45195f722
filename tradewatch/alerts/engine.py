"""Evaluate newly created trades against active alert rules."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from tradewatch.alerts.matching import build_message, matches, select_candidates
from tradewatch.metrics import alert_evaluation_errors_total, alerts_triggered_total
from tradewatch.models.trade import StockTrade
from tradewatch.storage.alerts import AlertStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class EvaluationReport:
    trade_id: int
    candidates: int = 0
    triggered: list[int] = field(default_factory=list)
    already_notified: list[int] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class AlertEngine:
    """Records one notification per (alert, trade) match.

    A failing alert is logged and skipped; it never prevents the other
    candidates from being evaluated.
    """

    def __init__(self, store: AlertStore, clock: Callable[[], datetime] | None = None) -> None:
        self.store = store
        self.clock = clock or _utcnow

    async def evaluate_trade(
        self, trade: StockTrade, trader_name: str | None = None
    ) -> EvaluationReport:
        report = EvaluationReport(trade_id=trade.id)
        try:
            candidates = await select_candidates(self.store, trade)
        except Exception as e:
            logger.exception("Could not load alert candidates for trade %s", trade.id)
            alert_evaluation_errors_total.inc()
            report.errors.append(f"candidate selection failed: {e}")
            return report

        report.candidates = len(candidates)
        now = self.clock()
        for alert in candidates:
            try:
                if not matches(alert, trade, now):
                    continue
                notification = await self.store.record_trigger(
                    alert, trade, build_message(alert, trade, trader_name), now
                )
            except Exception as e:
                logger.exception("Alert %s evaluation failed for trade %s", alert.id, trade.id)
                alert_evaluation_errors_total.inc()
                report.errors.append(f"alert {alert.id}: {e}")
                continue

            if notification is None:
                report.already_notified.append(alert.id)
                continue

            report.triggered.append(alert.id)
            alerts_triggered_total.labels(alert_type=alert.alert_type).inc()
            logger.info(
                "ALERT [%s] %s triggered by trade %s for user %s",
                alert.alert_type,
                alert.id,
                trade.id,
                alert.user_id,
            )

        return report
