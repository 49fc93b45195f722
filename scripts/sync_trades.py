#!/usr/bin/env python3
"""Run a trade sync from the command line.

Usage:
    python -m scripts.sync_trades [--source senate house] [--force] [--reset]

Runs each requested source type in turn against the FMP disclosure feeds,
resuming from the stored checkpoint unless --no-checkpoints is given.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from tradewatch.config import settings
from tradewatch.db.postgres import async_session_factory, engine
from tradewatch.ingestion.fmp_client import FMPPageSource
from tradewatch.logging_config import setup_logging
from tradewatch.schemas.sync import SyncOptions, SyncProgressEvent
from tradewatch.sync.pipeline import build_orchestrator

logger = logging.getLogger(__name__)

SOURCES = ("senate", "house", "insiders")


def _print_progress(event: SyncProgressEvent) -> None:
    logger.info("[%s] %d/%d (%.1f%%)", event.source_label, event.current, event.total, event.percent)


async def main(args: argparse.Namespace) -> int:
    source = FMPPageSource()
    orchestrator = build_orchestrator(async_session_factory, source)

    options = SyncOptions(
        limit=args.limit,
        max_pages=args.max_pages,
        force_update=args.force,
        batch_size=args.batch_size,
        use_checkpoints=not args.no_checkpoints,
    )

    try:
        if args.reset:
            for source_type in args.source:
                await orchestrator.reset_progress(source_type)

        batch = await orchestrator.sync_all(
            args.source, options, on_progress=_print_progress if args.verbose else None
        )
    finally:
        await source.close()
        await engine.dispose()

    for result in batch.results:
        status = "OK" if result.success else "FAILED"
        if result.short_circuited:
            status = "ALREADY COMPLETE"
        logger.info(
            "%s: %s created=%d updated=%d skipped=%d errors=%d (%.1fs)",
            result.source_type,
            status,
            result.created,
            result.updated,
            result.skipped,
            len(result.errors),
            result.duration_ms / 1000,
        )
        for error in result.errors[:10]:
            logger.warning("  %s", error)
    return 0 if batch.success else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Sync congressional and insider trades")
    parser.add_argument("--source", nargs="+", choices=SOURCES, default=list(SOURCES))
    parser.add_argument("--limit", type=int, default=settings.sync_page_limit, help="Records per page")
    parser.add_argument("--max-pages", type=int, default=settings.sync_max_pages)
    parser.add_argument("--force", action="store_true", help="Refresh existing trades")
    parser.add_argument("--batch-size", type=int, default=settings.sync_batch_size)
    parser.add_argument("--no-checkpoints", action="store_true", help="Ignore stored progress")
    parser.add_argument("--reset", action="store_true", help="Reset progress before syncing")
    parser.add_argument("--verbose", action="store_true", help="Log per-record progress")
    args = parser.parse_args()

    setup_logging(settings.log_level)
    sys.exit(asyncio.run(main(args)))
