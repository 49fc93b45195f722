"""Trade persistence with database-enforced natural-key uniqueness."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tradewatch.models.trade import ENRICHMENT_FIELDS, StockTrade
from tradewatch.schemas.trade import TradeCandidate

NaturalKey = tuple[str, int, str, date, str]


class TradeStore(ABC):
    @abstractmethod
    async def insert_if_absent(self, candidate: TradeCandidate) -> tuple[StockTrade, bool]:
        """Insert the trade unless its natural key exists.

        Returns the stored row and whether this call created it.
        """

    @abstractmethod
    async def update_enrichment(self, trade_id: int, fields: dict[str, Any]) -> StockTrade: ...


class SqlTradeStore(TradeStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert_if_absent(self, candidate: TradeCandidate) -> tuple[StockTrade, bool]:
        async with self._session_factory() as session, session.begin():
            stmt = pg_insert(StockTrade).values(**candidate.to_row())
            stmt = stmt.on_conflict_do_nothing(constraint="uq_stock_trade_natural_key")
            stmt = stmt.returning(StockTrade)
            result = await session.scalars(stmt)
            inserted = result.first()
            if inserted is not None:
                return inserted, True

            existing = await session.scalar(_natural_key_query(candidate.natural_key))
            return existing, False

    async def update_enrichment(self, trade_id: int, fields: dict[str, Any]) -> StockTrade:
        values = {k: v for k, v in fields.items() if k in ENRICHMENT_FIELDS}
        async with self._session_factory() as session, session.begin():
            stmt = (
                update(StockTrade)
                .where(StockTrade.id == trade_id)
                .values(**values)
                .returning(StockTrade)
            )
            result = await session.scalars(stmt)
            return result.one()


def _natural_key_query(key: NaturalKey):
    trader_kind, trader_id, ticker_symbol, transaction_date, transaction_type = key
    return select(StockTrade).where(
        StockTrade.trader_kind == trader_kind,
        StockTrade.trader_id == trader_id,
        StockTrade.ticker_symbol == ticker_symbol,
        StockTrade.transaction_date == transaction_date,
        StockTrade.transaction_type == transaction_type,
    )
