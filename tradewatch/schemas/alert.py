"""Typed alert criteria and request payloads.

An alert targets exactly one thing: a legislator, a ticker, or a pattern of
trade attributes. The variants below make any other combination
unrepresentable; flat request payloads are checked and converted with
``AlertRequest.to_criteria``.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

AlertType = Literal["politician", "stock", "pattern"]
AlertStatus = Literal["active", "paused", "deleted"]
TransactionType = Literal["buy", "sell", "exchange"]
TimeFrame = Literal["1h", "24h", "7d", "30d"]

TIME_FRAMES: dict[str, timedelta] = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}

_TARGET_FIELD = {
    "politician": "politician_id",
    "stock": "ticker_symbol",
    "pattern": "pattern_config",
}


def normalize_symbol(value: str) -> str:
    symbol = value.strip().upper()
    if not symbol:
        raise ValueError("ticker_symbol must not be blank")
    return symbol


class PatternFields(BaseModel):
    """Attribute filters of a pattern alert. Absent fields match anything."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    min_value: Decimal | None = Field(default=None, ge=0)
    max_value: Decimal | None = Field(default=None, ge=0)
    transaction_type: TransactionType | None = None
    time_frame: TimeFrame | None = None

    @model_validator(mode="after")
    def _check_value_range(self) -> PatternFields:
        if (
            self.min_value is not None
            and self.max_value is not None
            and self.min_value > self.max_value
        ):
            raise ValueError("min_value must be less than or equal to max_value")
        return self

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (self.min_value, self.max_value, self.transaction_type, self.time_frame)
        )

    def to_config(self) -> dict:
        """JSON-safe dict for the pattern_config column."""
        return self.model_dump(mode="json", exclude_none=True)

    def describe(self) -> str:
        parts: list[str] = []
        if self.transaction_type:
            parts.append(f"{self.transaction_type} trades")
        if self.min_value is not None and self.max_value is not None:
            parts.append(f"value between ${self.min_value:,.0f} and ${self.max_value:,.0f}")
        elif self.min_value is not None:
            parts.append(f"value >= ${self.min_value:,.0f}")
        elif self.max_value is not None:
            parts.append(f"value <= ${self.max_value:,.0f}")
        if self.time_frame:
            parts.append(f"within {self.time_frame}")
        return ", ".join(parts) or "any trade"


class PoliticianCriteria(BaseModel):
    model_config = ConfigDict(frozen=True)

    alert_type: Literal["politician"] = "politician"
    politician_id: int = Field(gt=0)


class StockCriteria(BaseModel):
    model_config = ConfigDict(frozen=True)

    alert_type: Literal["stock"] = "stock"
    ticker_symbol: str = Field(max_length=20)

    @field_validator("ticker_symbol")
    @classmethod
    def _normalize_symbol(cls, value: str) -> str:
        return normalize_symbol(value)


class PatternCriteria(BaseModel):
    model_config = ConfigDict(frozen=True)

    alert_type: Literal["pattern"] = "pattern"
    pattern: PatternFields


AlertCriteria = Annotated[
    Union[PoliticianCriteria, StockCriteria, PatternCriteria],
    Field(discriminator="alert_type"),
]


class AlertRequest(BaseModel):
    """Flat alert-creation payload as submitted by a client."""

    model_config = ConfigDict(extra="forbid")

    alert_type: AlertType
    politician_id: int | None = None
    ticker_symbol: str | None = None
    pattern_config: PatternFields | None = None

    @field_validator("ticker_symbol")
    @classmethod
    def _normalize_symbol(cls, value: str | None) -> str | None:
        return normalize_symbol(value) if value is not None else None

    @model_validator(mode="after")
    def _exactly_one_target(self) -> AlertRequest:
        values = {
            "politician_id": self.politician_id,
            "ticker_symbol": self.ticker_symbol,
            "pattern_config": self.pattern_config,
        }
        required = _TARGET_FIELD[self.alert_type]
        if values[required] is None:
            raise ValueError(f"{required} is required for {self.alert_type} alerts")
        stray = sorted(name for name, value in values.items() if name != required and value is not None)
        if stray:
            raise ValueError(f"{self.alert_type} alerts must not set {', '.join(stray)}")
        if self.pattern_config is not None and self.pattern_config.is_empty:
            raise ValueError("pattern_config must set at least one filter")
        return self

    def to_criteria(self) -> AlertCriteria:
        if self.alert_type == "politician":
            return PoliticianCriteria(politician_id=self.politician_id)
        if self.alert_type == "stock":
            return StockCriteria(ticker_symbol=self.ticker_symbol)
        return PatternCriteria(pattern=self.pattern_config)


class AlertUpdate(BaseModel):
    """Mutable parts of an existing alert."""

    model_config = ConfigDict(extra="forbid")

    status: Literal["active", "paused"] | None = None
    pattern_config: PatternFields | None = None


class AlertSummary(BaseModel):
    total_alerts: int = 0
    active_alerts: int = 0
    paused_alerts: int = 0
    triggered_today: int = 0
    triggered_this_week: int = 0
    by_type: dict[str, int] = Field(
        default_factory=lambda: {"politician": 0, "stock": 0, "pattern": 0}
    )
