"""Per-record processing (normalize → resolve → write) and wiring."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tradewatch.alerts.engine import AlertEngine
from tradewatch.ingestion.base import PageSource
from tradewatch.schemas.trade import TradeCandidate
from tradewatch.storage.alerts import SqlAlertStore
from tradewatch.storage.checkpoints import SqlCheckpointStore
from tradewatch.storage.references import SqlReferenceStore
from tradewatch.storage.trades import SqlTradeStore
from tradewatch.sync.normalizer import normalize_record
from tradewatch.sync.orchestrator import RecordProcessor, SyncOrchestrator
from tradewatch.sync.resolver import EntityResolver
from tradewatch.sync.writer import TradeWriter, WriteOutcome


class TradeRecordProcessor(RecordProcessor):
    def __init__(self, resolver: EntityResolver, writer: TradeWriter, source_name: str = "fmp") -> None:
        self.resolver = resolver
        self.writer = writer
        self.source_name = source_name

    async def process(
        self, source_type: str, raw: dict[str, Any], force_update: bool
    ) -> WriteOutcome:
        record = normalize_record(source_type, raw)

        # Validate the trade's own fields before touching the database
        draft = TradeCandidate(
            trader_kind=record.trader_kind,
            trader_id=0,
            ticker_symbol=record.ticker_symbol,
            transaction_date=record.transaction_date,
            transaction_type=record.transaction_type,
            amount_range_text=record.amount_range_text,
            estimated_value=record.estimated_value,
            quantity=record.quantity,
            filing_date=record.filing_date,
            source_type=source_type,
            raw_source_payload={
                "source": self.source_name,
                "original": raw,
                "synced_at": datetime.now(timezone.utc).isoformat(),
            },
        )

        ticker = await self.resolver.resolve_ticker(record.ticker_symbol, record.asset_description)
        if record.trader_kind == "legislator":
            trader = await self.resolver.resolve_legislator(
                record.trader_name,
                record.first_name,
                record.last_name,
                record.chamber,
                record.district_field,
            )
        else:
            trader = await self.resolver.resolve_insider(
                record.trader_name, ticker.symbol, record.insider_role
            )

        candidate = draft.model_copy(update={"trader_id": trader.id, "ticker_symbol": ticker.symbol})
        return await self.writer.write_trade(
            candidate, force_update=force_update, trader_name=trader.display_name
        )


def build_orchestrator(
    session_factory: async_sessionmaker[AsyncSession], source: PageSource
) -> SyncOrchestrator:
    """Wire the SQL-backed stores, alert engine and pipeline together."""
    engine = AlertEngine(SqlAlertStore(session_factory))
    writer = TradeWriter(SqlTradeStore(session_factory), on_created=engine.evaluate_trade)
    resolver = EntityResolver(SqlReferenceStore(session_factory))
    return SyncOrchestrator(
        source=source,
        processor=TradeRecordProcessor(resolver, writer),
        checkpoints=SqlCheckpointStore(session_factory),
    )
