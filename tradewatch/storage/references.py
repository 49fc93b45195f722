"""Find-or-create storage for legislators, insiders and tickers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tradewatch.models.member import CorporateInsider, Legislator
from tradewatch.models.ticker import StockTicker


class ReferenceStore(ABC):
    """Reference entities keyed by their natural keys.

    The ``get_or_create_*`` methods must never create a second row for a key
    that already exists.
    """

    @abstractmethod
    async def get_or_create_legislator(
        self,
        full_name: str,
        chamber: str,
        state_code: str,
        district: int | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> Legislator: ...

    @abstractmethod
    async def get_or_create_ticker(self, symbol: str, company_name: str) -> StockTicker: ...

    @abstractmethod
    async def get_or_create_insider(
        self, name: str, ticker_symbol: str, company_name: str, role: str | None = None
    ) -> CorporateInsider: ...

    @abstractmethod
    async def get_legislator(self, legislator_id: int) -> Legislator | None: ...

    @abstractmethod
    async def get_ticker(self, symbol: str) -> StockTicker | None: ...


class SqlReferenceStore(ReferenceStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_or_create_legislator(
        self,
        full_name: str,
        chamber: str,
        state_code: str,
        district: int | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> Legislator:
        async with self._session_factory() as session, session.begin():
            stmt = pg_insert(Legislator.__table__).values(
                full_name=full_name,
                first_name=first_name,
                last_name=last_name,
                chamber=chamber,
                state_code=state_code,
                district=district,
            )
            stmt = stmt.on_conflict_do_nothing(constraint="uq_legislator_natural_key")
            await session.execute(stmt)

            result = await session.execute(
                select(Legislator).where(
                    Legislator.full_name == full_name,
                    Legislator.chamber == chamber,
                    Legislator.state_code == state_code,
                )
            )
            return result.scalar_one()

    async def get_or_create_ticker(self, symbol: str, company_name: str) -> StockTicker:
        async with self._session_factory() as session, session.begin():
            stmt = pg_insert(StockTicker.__table__).values(
                symbol=symbol, company_name=company_name
            )
            stmt = stmt.on_conflict_do_nothing(index_elements=["symbol"])
            await session.execute(stmt)

            result = await session.execute(
                select(StockTicker).where(StockTicker.symbol == symbol)
            )
            return result.scalar_one()

    async def get_or_create_insider(
        self, name: str, ticker_symbol: str, company_name: str, role: str | None = None
    ) -> CorporateInsider:
        async with self._session_factory() as session, session.begin():
            stmt = pg_insert(CorporateInsider.__table__).values(
                name=name,
                ticker_symbol=ticker_symbol,
                company_name=company_name,
                role=role,
            )
            stmt = stmt.on_conflict_do_nothing(constraint="uq_insider_natural_key")
            await session.execute(stmt)

            result = await session.execute(
                select(CorporateInsider).where(
                    CorporateInsider.name == name,
                    CorporateInsider.ticker_symbol == ticker_symbol,
                )
            )
            return result.scalar_one()

    async def get_legislator(self, legislator_id: int) -> Legislator | None:
        async with self._session_factory() as session:
            return await session.get(Legislator, legislator_id)

    async def get_ticker(self, symbol: str) -> StockTicker | None:
        async with self._session_factory() as session:
            return await session.get(StockTicker, symbol.upper())
