#!/usr/bin/env python3
"""Initialize database tables."""

import asyncio
import sys

from loguru import logger

from nearme.config.database import async_engine
from nearme.models import Base

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def init_database() -> None:
    """Create all payment tables that do not exist yet."""
    logger.info("Connecting to database...")

    async with async_engine.begin() as conn:
        logger.info("Creating tables (checkfirst=True)...")
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    await async_engine.dispose()
    logger.success("Database tables created successfully!")


if __name__ == "__main__":
    asyncio.run(init_database())
