"""User alert rules and the notifications they produce."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from tradewatch.db.postgres import Base
from tradewatch.schemas.alert import (
    AlertCriteria,
    PatternCriteria,
    PatternFields,
    PoliticianCriteria,
    StockCriteria,
)


class UserAlert(Base):
    __tablename__ = "user_alert"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("app_user.id", ondelete="CASCADE"), index=True)
    alert_type: Mapped[str] = mapped_column(String(20))  # politician / stock / pattern
    status: Mapped[str] = mapped_column(String(20), default="active")  # active / paused / deleted
    politician_id: Mapped[int | None] = mapped_column(ForeignKey("legislator.id"))
    ticker_symbol: Mapped[str | None] = mapped_column(String(20))
    pattern_config: Mapped[dict | None] = mapped_column(JSONB)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    last_triggered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint(
            "(alert_type = 'politician' AND politician_id IS NOT NULL"
            " AND ticker_symbol IS NULL AND pattern_config IS NULL)"
            " OR (alert_type = 'stock' AND ticker_symbol IS NOT NULL"
            " AND politician_id IS NULL AND pattern_config IS NULL)"
            " OR (alert_type = 'pattern' AND pattern_config IS NOT NULL"
            " AND politician_id IS NULL AND ticker_symbol IS NULL)",
            name="ck_user_alert_single_target",
        ),
        Index("ix_user_alert_status_type", "status", "alert_type"),
        Index("ix_user_alert_politician", "politician_id"),
        Index("ix_user_alert_ticker", "ticker_symbol"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def criteria(self) -> AlertCriteria:
        """The alert's target as a typed variant."""
        if self.alert_type == "politician":
            return PoliticianCriteria(politician_id=self.politician_id)
        if self.alert_type == "stock":
            return StockCriteria(ticker_symbol=self.ticker_symbol)
        return PatternCriteria(pattern=PatternFields.model_validate(self.pattern_config or {}))

    def apply_criteria(self, criteria: AlertCriteria) -> None:
        """Write a criteria variant onto the target columns, clearing the others."""
        self.alert_type = criteria.alert_type
        self.politician_id = None
        self.ticker_symbol = None
        self.pattern_config = None
        if isinstance(criteria, PoliticianCriteria):
            self.politician_id = criteria.politician_id
        elif isinstance(criteria, StockCriteria):
            self.ticker_symbol = criteria.ticker_symbol
        else:
            self.pattern_config = criteria.pattern.to_config()


class AlertNotification(Base):
    __tablename__ = "alert_notification"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    alert_id: Mapped[int] = mapped_column(ForeignKey("user_alert.id", ondelete="CASCADE"))
    user_id: Mapped[int] = mapped_column(ForeignKey("app_user.id", ondelete="CASCADE"))
    trade_id: Mapped[int] = mapped_column(ForeignKey("stock_trade.id"))
    message: Mapped[str] = mapped_column(Text)
    delivery_status: Mapped[str] = mapped_column(
        String(20), default="pending"
    )  # pending / delivered / failed
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("alert_id", "trade_id", name="uq_alert_notification_trade"),
        Index("ix_alert_notification_user_created", "user_id", "created_at"),
    )
