"""
Create the car_sales table and, when SEED_DEMO_DATA is set, load demo rows
"""

import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import async_session_maker, dispose_engine, engine
from core.logging import setup_logging
from ingestion.loaders.snapshot_store import SnapshotStore
from ingestion.seed import seed_demo_data
from models.base import Base
from models.car_sales import CarSales  # noqa: F401

setup_logging()
logger = logging.getLogger(__name__)


async def init_database():
    try:
        async with engine.begin() as conn:
            logger.info(f"Creating table {CarSales.__tablename__} (if missing)")
            await conn.run_sync(Base.metadata.create_all)

        if settings.SEED_DEMO_DATA:
            async with async_session_maker() as session:
                inserted = await seed_demo_data(SnapshotStore(session))
            logger.info(f"Demo seed inserted {inserted} rows")
    finally:
        await dispose_engine()

    logger.info("Database ready")


if __name__ == "__main__":
    asyncio.run(init_database())
