from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tradewatch.schemas.alert import TransactionType, normalize_symbol

TraderKind = Literal["legislator", "insider"]


class TradeCandidate(BaseModel):
    """A fully resolved trade ready for the writer.

    Constructing one validates the field constraints, so a candidate that
    exists is always safe to insert.
    """

    model_config = ConfigDict(frozen=True)

    trader_kind: TraderKind
    trader_id: int
    ticker_symbol: str = Field(max_length=20)
    transaction_date: date
    transaction_type: TransactionType
    amount_range_text: str | None = None
    estimated_value: Decimal | None = Field(default=None, ge=0)
    quantity: Decimal | None = Field(default=None, ge=0)
    filing_date: date | None = None
    source_type: str | None = None
    raw_source_payload: dict[str, Any] = Field(default_factory=dict)

    @field_validator("ticker_symbol")
    @classmethod
    def _normalize_symbol(cls, value: str) -> str:
        return normalize_symbol(value)

    @model_validator(mode="after")
    def _filing_after_transaction(self) -> TradeCandidate:
        if self.filing_date is not None and self.filing_date < self.transaction_date:
            raise ValueError(
                f"filing_date {self.filing_date} is before transaction_date {self.transaction_date}"
            )
        return self

    @property
    def natural_key(self) -> tuple[str, int, str, date, str]:
        return (
            self.trader_kind,
            self.trader_id,
            self.ticker_symbol,
            self.transaction_date,
            self.transaction_type,
        )

    def enrichment(self) -> dict[str, Any]:
        """Fields a force-update may overwrite on an existing row."""
        return {
            "amount_range_text": self.amount_range_text,
            "estimated_value": self.estimated_value,
            "quantity": self.quantity,
            "filing_date": self.filing_date,
            "raw_source_payload": self.raw_source_payload,
        }

    def to_row(self) -> dict[str, Any]:
        return self.model_dump()
