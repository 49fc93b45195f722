from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from tradewatch.db.postgres import Base


class Legislator(Base):
    __tablename__ = "legislator"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(200), index=True)
    first_name: Mapped[str | None] = mapped_column(String(100))
    last_name: Mapped[str | None] = mapped_column(String(100))
    chamber: Mapped[str] = mapped_column(String(10))  # senate / house
    state_code: Mapped[str] = mapped_column(String(2))
    district: Mapped[int | None] = mapped_column()  # house only
    party: Mapped[str | None] = mapped_column(String(50))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("full_name", "chamber", "state_code", name="uq_legislator_natural_key"),
    )

    @property
    def display_name(self) -> str:
        return self.full_name


class CorporateInsider(Base):
    __tablename__ = "corporate_insider"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    ticker_symbol: Mapped[str] = mapped_column(
        ForeignKey("stock_ticker.symbol"), index=True
    )
    company_name: Mapped[str] = mapped_column(String(255))
    role: Mapped[str | None] = mapped_column(String(255))  # officer / director / 10% owner
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("name", "ticker_symbol", name="uq_insider_natural_key"),
    )

    @property
    def display_name(self) -> str:
        return self.name
