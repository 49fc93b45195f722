"""Insert-or-skip/update writer for trade records."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from tradewatch.models.trade import StockTrade
from tradewatch.schemas.trade import TradeCandidate
from tradewatch.storage.trades import TradeStore

logger = logging.getLogger(__name__)

# Called once for every newly inserted trade: (trade, trader display name)
TradeCreatedHook = Callable[[StockTrade, "str | None"], Awaitable[object]]


@dataclass(frozen=True)
class WriteOutcome:
    action: str  # created / updated / skipped
    trade: StockTrade


class TradeWriter:
    def __init__(self, store: TradeStore, on_created: TradeCreatedHook | None = None) -> None:
        self.store = store
        self.on_created = on_created

    async def write_trade(
        self,
        candidate: TradeCandidate,
        force_update: bool = False,
        trader_name: str | None = None,
    ) -> WriteOutcome:
        """Persist a trade unless its natural key already exists.

        Existing trades are skipped, or have their enrichment fields
        refreshed when ``force_update`` is set. Only a newly created trade
        is handed to ``on_created``.
        """
        trade, created = await self.store.insert_if_absent(candidate)
        if created:
            logger.debug("Created trade %s %s", trade.id, candidate.natural_key)
            if self.on_created is not None:
                await self.on_created(trade, trader_name)
            return WriteOutcome("created", trade)

        if force_update:
            trade = await self.store.update_enrichment(trade.id, candidate.enrichment())
            return WriteOutcome("updated", trade)

        return WriteOutcome("skipped", trade)
