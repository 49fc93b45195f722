"""Turn raw provider records into source-independent trade facts."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from tradewatch.errors import RecordRejected

CHAMBER_FOR_SOURCE = {"senate": "senate", "house": "house"}

_AMOUNT_RE = re.compile(r"\$?\s*([\d,]+(?:\.\d+)?)")
_MISSING_TICKERS = {"", "--", "N/A", "NA"}


@dataclass(frozen=True)
class NormalizedRecord:
    trader_kind: str  # legislator / insider
    trader_name: str
    ticker_symbol: str
    asset_description: str
    transaction_date: date
    transaction_type: str  # buy / sell / exchange
    first_name: str | None = None
    last_name: str | None = None
    chamber: str | None = None
    district_field: str | None = None
    insider_role: str | None = None
    amount_range_text: str | None = None
    estimated_value: Decimal | None = None
    quantity: Decimal | None = None
    filing_date: date | None = None
    raw: dict[str, Any] = field(default_factory=dict)


def normalize_record(source_type: str, raw: dict[str, Any]) -> NormalizedRecord:
    """Normalize one raw record. Raises RecordRejected when it is unusable."""
    if not isinstance(raw, dict):
        raise RecordRejected(f"expected an object, got {type(raw).__name__}")
    if source_type in CHAMBER_FOR_SOURCE:
        return _normalize_legislator_record(raw, CHAMBER_FOR_SOURCE[source_type])
    if source_type == "insiders":
        return _normalize_insider_record(raw)
    raise RecordRejected(f"unknown source type {source_type!r}")


def _normalize_legislator_record(raw: dict[str, Any], chamber: str) -> NormalizedRecord:
    ticker = _clean_ticker(raw.get("symbol") or raw.get("ticker"))

    transaction_date = parse_date(raw.get("transactionDate") or raw.get("transaction_date"))
    if transaction_date is None:
        raise RecordRejected("missing or unparseable transaction date")

    first_name = (raw.get("firstName") or "").strip() or None
    last_name = (raw.get("lastName") or "").strip() or None
    full_name = (
        raw.get("office")
        or raw.get("senator")
        or raw.get("representative")
        or " ".join(part for part in (first_name, last_name) if part)
    ).strip()
    if not full_name:
        raise RecordRejected("missing legislator name")

    amount_text = (raw.get("amount") or "").strip() or None

    return NormalizedRecord(
        trader_kind="legislator",
        trader_name=full_name,
        first_name=first_name,
        last_name=last_name,
        chamber=chamber,
        district_field=(raw.get("district") or "").strip(),
        ticker_symbol=ticker,
        asset_description=(raw.get("assetDescription") or "").strip(),
        transaction_date=transaction_date,
        transaction_type=parse_transaction_type(raw.get("type") or ""),
        amount_range_text=amount_text,
        estimated_value=parse_amount_range(amount_text),
        filing_date=parse_date(raw.get("disclosureDate") or raw.get("dateReceived")),
        raw=raw,
    )


def _normalize_insider_record(raw: dict[str, Any]) -> NormalizedRecord:
    ticker = _clean_ticker(raw.get("symbol"))

    transaction_date = parse_date(raw.get("transactionDate"))
    if transaction_date is None:
        raise RecordRejected("missing or unparseable transaction date")

    name = (raw.get("reportingName") or "").strip()
    if not name:
        raise RecordRejected("missing insider name")

    quantity = _parse_decimal(raw.get("securitiesTransacted", raw.get("amountOfShares")))
    price = _parse_decimal(raw.get("price", raw.get("pricePerShare")))
    estimated_value = quantity * price if quantity is not None and price is not None else None
    direction = raw.get("acquisitionOrDisposition") or raw.get("acquiredDisposedCode") or ""

    return NormalizedRecord(
        trader_kind="insider",
        trader_name=name,
        insider_role=(raw.get("typeOfOwner") or "").strip() or None,
        ticker_symbol=ticker,
        asset_description=(raw.get("securityName") or "").strip(),
        transaction_date=transaction_date,
        transaction_type=parse_insider_transaction_type(direction),
        estimated_value=estimated_value,
        quantity=quantity,
        filing_date=parse_date(raw.get("filingDate")),
        raw=raw,
    )


def parse_transaction_type(text: str) -> str:
    normalized = text.lower().strip()
    if "purchase" in normalized or "buy" in normalized:
        return "buy"
    if "sale" in normalized or "sell" in normalized:
        return "sell"
    return "exchange"


def parse_insider_transaction_type(code: str) -> str:
    normalized = code.lower().strip()
    if normalized in ("a", "acquired"):
        return "buy"
    if normalized in ("d", "disposed"):
        return "sell"
    return "exchange"


def parse_amount_range(text: str | None) -> Decimal | None:
    """Estimate a dollar value from text like '$1,001 - $15,000' (midpoint)."""
    if not text:
        return None
    values = []
    for match in _AMOUNT_RE.findall(text):
        value = _parse_decimal(match)
        if value is not None:
            values.append(value)
    if len(values) == 1:
        return values[0]
    if len(values) == 2:
        return (values[0] + values[1]) / 2
    return None


def parse_date(value: Any) -> date | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    for fmt in ("%Y-%m-%d", "%m/%d/%Y", "%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _clean_ticker(value: Any) -> str:
    ticker = str(value or "").strip().upper()
    if ticker in _MISSING_TICKERS:
        raise RecordRejected("record has no ticker symbol")
    return ticker


def _parse_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        cleaned = str(value).replace("$", "").replace(",", "").strip()
        return Decimal(cleaned) if cleaned else None
    except (InvalidOperation, ValueError):
        return None
