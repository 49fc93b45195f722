from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from tradewatch.db.postgres import Base

# Columns a force-update sync may overwrite on an existing trade
ENRICHMENT_FIELDS = (
    "amount_range_text",
    "estimated_value",
    "quantity",
    "filing_date",
    "raw_source_payload",
)


class StockTrade(Base):
    __tablename__ = "stock_trade"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    trader_kind: Mapped[str] = mapped_column(String(20))  # legislator / insider
    trader_id: Mapped[int] = mapped_column()
    ticker_symbol: Mapped[str] = mapped_column(
        ForeignKey("stock_ticker.symbol"), index=True
    )
    transaction_date: Mapped[date] = mapped_column(Date, index=True)
    transaction_type: Mapped[str] = mapped_column(String(10))  # buy / sell / exchange
    amount_range_text: Mapped[str | None] = mapped_column(String(100))
    estimated_value: Mapped[Decimal | None] = mapped_column(Numeric(15, 2))
    quantity: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    filing_date: Mapped[date | None] = mapped_column(Date)
    source_type: Mapped[str | None] = mapped_column(String(20))  # senate / house / insiders
    raw_source_payload: Mapped[dict | None] = mapped_column(JSONB, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "trader_kind",
            "trader_id",
            "ticker_symbol",
            "transaction_date",
            "transaction_type",
            name="uq_stock_trade_natural_key",
        ),
        CheckConstraint("estimated_value IS NULL OR estimated_value >= 0", name="ck_trade_value"),
        CheckConstraint("quantity IS NULL OR quantity >= 0", name="ck_trade_quantity"),
        CheckConstraint(
            "filing_date IS NULL OR filing_date >= transaction_date",
            name="ck_trade_filing_after_transaction",
        ),
        Index("ix_stock_trade_trader", "trader_kind", "trader_id", "transaction_date"),
    )
