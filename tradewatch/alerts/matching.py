"""Matching trades against alert criteria."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal

from tradewatch.models.alert import UserAlert
from tradewatch.models.trade import StockTrade
from tradewatch.schemas.alert import (
    TIME_FRAMES,
    PatternFields,
    PoliticianCriteria,
    StockCriteria,
)
from tradewatch.storage.alerts import AlertStore

_VERBS = {"buy": "bought", "sell": "sold", "exchange": "exchanged"}


async def select_candidates(store: AlertStore, trade: StockTrade) -> list[UserAlert]:
    """Active alerts that could match ``trade``, each at most once."""
    groups = []
    if trade.trader_kind == "legislator":
        groups.append(await store.active_alerts_for_politician(trade.trader_id))
    groups.append(await store.active_alerts_for_ticker(trade.ticker_symbol.upper()))
    groups.append(await store.active_pattern_alerts())

    seen: set[int] = set()
    candidates = []
    for group in groups:
        for alert in group:
            if alert.id in seen or not alert.is_active:
                continue
            seen.add(alert.id)
            candidates.append(alert)
    return candidates


def transaction_moment(value: date | datetime) -> datetime:
    """Treat a bare date as midnight UTC; assume UTC for naive datetimes."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def pattern_matches(pattern: PatternFields, trade: StockTrade, now: datetime) -> bool:
    if pattern.transaction_type and pattern.transaction_type != trade.transaction_type:
        return False

    # Unknown value passes the range check
    if trade.estimated_value is not None:
        value = Decimal(str(trade.estimated_value))
        if pattern.min_value is not None and value < pattern.min_value:
            return False
        if pattern.max_value is not None and value > pattern.max_value:
            return False

    if pattern.time_frame:
        occurred = transaction_moment(trade.transaction_date)
        if occurred < now - TIME_FRAMES[pattern.time_frame] or occurred > now:
            return False

    return True


def matches(alert: UserAlert, trade: StockTrade, now: datetime) -> bool:
    if not alert.is_active:
        return False
    criteria = alert.criteria
    if isinstance(criteria, PoliticianCriteria):
        return trade.trader_kind == "legislator" and trade.trader_id == criteria.politician_id
    if isinstance(criteria, StockCriteria):
        return trade.ticker_symbol.upper() == criteria.ticker_symbol
    return pattern_matches(criteria.pattern, trade, now)


def trigger_reason(alert: UserAlert) -> str:
    criteria = alert.criteria
    if isinstance(criteria, PoliticianCriteria):
        return "Followed politician traded"
    if isinstance(criteria, StockCriteria):
        return f"New trade in {criteria.ticker_symbol}"
    return f"Pattern matched ({criteria.pattern.describe()})"


def build_message(alert: UserAlert, trade: StockTrade, trader_name: str | None = None) -> str:
    """e.g. 'New trade in AAPL: Nancy Pelosi bought AAPL (est. $32,500) on 2024-03-01'."""
    who = trader_name or f"{trade.trader_kind.capitalize()} #{trade.trader_id}"
    verb = _VERBS.get(trade.transaction_type, trade.transaction_type)
    value = ""
    if trade.estimated_value is not None:
        value = f" (est. ${Decimal(str(trade.estimated_value)):,.0f})"
    return (
        f"{trigger_reason(alert)}: {who} {verb} {trade.ticker_symbol}{value}"
        f" on {trade.transaction_date.isoformat()}"
    )
