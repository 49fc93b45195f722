"""Page source for the Financial Modeling Prep disclosure endpoints."""

from __future__ import annotations

import logging

import httpx

from tradewatch.config import settings
from tradewatch.errors import SourceFetchError
from tradewatch.ingestion.base import HttpPageSource, RateLimiter, RawRecord

logger = logging.getLogger(__name__)

FMP_ENDPOINTS = {
    "senate": "/stable/senate-latest",
    "house": "/stable/house-latest",
    "insiders": "/stable/insider-trading",
}


class FMPPageSource(HttpPageSource):
    source_name = "fmp"
    rate_limiter = RateLimiter(max_calls=5, period_seconds=1.0)

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(client)
        self.api_key = api_key if api_key is not None else settings.fmp_api_key
        self.base_url = (base_url or settings.fmp_base_url).rstrip("/")

    async def fetch_page(self, source_type: str, page: int, page_size: int) -> list[RawRecord]:
        if not self.api_key:
            raise SourceFetchError("FMP API key not configured")
        try:
            endpoint = FMP_ENDPOINTS[source_type]
        except KeyError:
            raise SourceFetchError(f"no FMP endpoint for source type {source_type!r}") from None

        data = await self.fetch_json(
            f"{self.base_url}{endpoint}",
            params={"page": page, "limit": page_size, "apikey": self.api_key},
        )
        if not isinstance(data, list):
            logger.error("Unexpected response format from FMP %s page %d", source_type, page)
            raise SourceFetchError(f"unexpected FMP response for {source_type} page {page}")
        return data
