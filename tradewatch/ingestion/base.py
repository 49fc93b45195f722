from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from tradewatch.errors import SourceFetchError

logger = logging.getLogger(__name__)

RawRecord = dict[str, Any]


class RateLimiter:
    """Token bucket rate limiter for API calls."""

    def __init__(self, max_calls: int, period_seconds: float) -> None:
        self.max_calls = max_calls
        self.period = period_seconds
        self.calls: list[float] = []

    async def acquire(self) -> None:
        now = time.monotonic()
        self.calls = [t for t in self.calls if now - t < self.period]
        if len(self.calls) >= self.max_calls:
            sleep_time = self.period - (now - self.calls[0])
            logger.debug("Rate limit hit, sleeping %.1fs", sleep_time)
            await asyncio.sleep(sleep_time)
        self.calls.append(time.monotonic())


class PageSource(ABC):
    """A paginated provider of raw disclosure records."""

    @abstractmethod
    async def fetch_page(self, source_type: str, page: int, page_size: int) -> list[RawRecord]:
        """Return one page of raw records, in provider order."""

    async def close(self) -> None:
        return None


async def fetch_all_pages(
    source: PageSource, source_type: str, max_pages: int, page_size: int
) -> list[RawRecord]:
    """Concatenate up to ``max_pages`` pages into one ordered list.

    Stops early on an empty or short page.
    """
    records: list[RawRecord] = []
    for page in range(max_pages):
        batch = await source.fetch_page(source_type, page, page_size)
        logger.debug("[%s] page %d returned %d records", source_type, page, len(batch))
        records.extend(batch)
        if len(batch) < page_size:
            break
    logger.info("[%s] Fetched %d raw records", source_type, len(records))
    return records


class HttpPageSource(PageSource):
    """Page source backed by a JSON HTTP API with rate limiting and retries."""

    source_name: str = "unknown"
    rate_limiter: RateLimiter | None = None
    max_retries: int = 3
    retry_delay: float = 2.0

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self.client = client or httpx.AsyncClient(timeout=30.0)

    async def close(self) -> None:
        await self.client.aclose()

    async def fetch_json(self, url: str, **kwargs: Any) -> Any:
        """Fetch JSON from a URL with rate limiting and retry logic.

        Raises SourceFetchError once retries are exhausted.
        """
        for attempt in range(1, self.max_retries + 1):
            try:
                if self.rate_limiter:
                    await self.rate_limiter.acquire()
                response = await self.client.get(url, **kwargs)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                if attempt == self.max_retries:
                    logger.error("HTTP %d on %s after %d attempts", e.response.status_code, url, attempt)
                    raise SourceFetchError(f"HTTP {e.response.status_code} from {url}") from e
                if e.response.status_code == 429:
                    wait = self.retry_delay * attempt * 2
                    logger.warning("429 rate limited on %s, waiting %.1fs", url, wait)
                    await asyncio.sleep(wait)
                    continue
                await asyncio.sleep(self.retry_delay * attempt)
            except httpx.RequestError as e:
                if attempt == self.max_retries:
                    logger.error("Request failed for %s after %d attempts: %s", url, attempt, e)
                    raise SourceFetchError(f"request to {url} failed: {e}") from e
                await asyncio.sleep(self.retry_delay * attempt)
        raise SourceFetchError(f"no response from {url}")

    @abstractmethod
    async def fetch_page(self, source_type: str, page: int, page_size: int) -> list[RawRecord]: ...
