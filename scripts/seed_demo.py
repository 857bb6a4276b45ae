"""
Seed demo rows into an empty database
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import async_session_maker, dispose_engine
from core.logging import setup_logging
from ingestion.loaders.snapshot_store import SnapshotStore
from ingestion.seed import seed_demo_data

setup_logging()
logger = logging.getLogger(__name__)


async def main():
    try:
        async with async_session_maker() as session:
            inserted = await seed_demo_data(SnapshotStore(session))
        logger.info(f"Demo seed done ({inserted} rows)")
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
