#!/usr/bin/env python3
"""Create all database tables.

Usage:
    python -m scripts.init_db [--drop]
"""

from __future__ import annotations

import argparse
import asyncio
import logging

import tradewatch.models  # noqa: F401  (registers tables on Base.metadata)
from tradewatch.config import settings
from tradewatch.db.postgres import Base, engine
from tradewatch.logging_config import setup_logging

logger = logging.getLogger(__name__)


async def create_tables(drop: bool = False) -> None:
    try:
        async with engine.begin() as conn:
            if drop:
                await conn.run_sync(Base.metadata.drop_all)
                logger.warning("Dropped all tables")
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created/verified")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create tradewatch tables")
    parser.add_argument("--drop", action="store_true", help="Drop existing tables first")
    args = parser.parse_args()

    setup_logging(settings.log_level)
    asyncio.run(create_tables(drop=args.drop))
