"""Entity resolution: map raw trader and ticker fields onto reference rows."""

from __future__ import annotations

import logging
import re

from tradewatch.errors import RecordRejected
from tradewatch.models.member import CorporateInsider, Legislator
from tradewatch.models.ticker import StockTicker
from tradewatch.storage.references import ReferenceStore

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def parse_district_field(chamber: str, district_field: str | None) -> tuple[str, int | None]:
    """Split a provider district field into (state_code, district).

    Senate records carry the two-letter state alone ("OK"); House records
    append the district number ("FL02"). An empty district part means None.
    """
    field = (district_field or "").strip().upper()
    if len(field) < 2:
        raise RecordRejected(f"invalid district field {district_field!r}")
    if chamber == "senate":
        return field[:2], None

    state_code, remainder = field[:2], field[2:]
    if not remainder:
        return state_code, None
    if not remainder.isdigit():
        raise RecordRejected(f"invalid district number in {district_field!r}")
    return state_code, int(remainder)


def _clean_name(name: str | None) -> str:
    return _WHITESPACE_RE.sub(" ", (name or "").strip())


class EntityResolver:
    """Finds or creates reference entities, caching hits for the run."""

    def __init__(self, store: ReferenceStore) -> None:
        self.store = store
        self._legislators: dict[tuple[str, str, str], Legislator] = {}
        self._insiders: dict[tuple[str, str], CorporateInsider] = {}
        self._tickers: dict[str, StockTicker] = {}

    async def resolve_legislator(
        self,
        raw_name: str | None,
        first_name: str | None,
        last_name: str | None,
        chamber: str,
        district_field: str | None,
    ) -> Legislator:
        full_name = _clean_name(raw_name) or _clean_name(f"{first_name or ''} {last_name or ''}")
        if not full_name:
            raise RecordRejected("legislator has no name")
        state_code, district = parse_district_field(chamber, district_field)

        key = (full_name, chamber, state_code)
        cached = self._legislators.get(key)
        if cached is not None:
            return cached

        legislator = await self.store.get_or_create_legislator(
            full_name=full_name,
            chamber=chamber,
            state_code=state_code,
            district=district,
            first_name=_clean_name(first_name) or None,
            last_name=_clean_name(last_name) or None,
        )
        self._legislators[key] = legislator
        return legislator

    async def resolve_ticker(self, symbol: str, display_name: str | None = None) -> StockTicker:
        normalized = symbol.strip().upper()
        if not normalized:
            raise RecordRejected("ticker symbol is blank")

        cached = self._tickers.get(normalized)
        if cached is not None:
            return cached

        ticker = await self.store.get_or_create_ticker(
            normalized, _clean_name(display_name) or f"Company ({normalized})"
        )
        self._tickers[normalized] = ticker
        return ticker

    async def resolve_insider(
        self, name: str, ticker_symbol: str, role: str | None = None
    ) -> CorporateInsider:
        clean = _clean_name(name)
        if not clean:
            raise RecordRejected("insider has no name")

        ticker = await self.resolve_ticker(ticker_symbol)
        key = (clean, ticker.symbol)
        cached = self._insiders.get(key)
        if cached is not None:
            return cached

        insider = await self.store.get_or_create_insider(
            name=clean,
            ticker_symbol=ticker.symbol,
            company_name=ticker.company_name,
            role=role,
        )
        self._insiders[key] = insider
        return insider
