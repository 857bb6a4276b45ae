"""
Demo data so a fresh dashboard has something to show before the first run
"""

from datetime import datetime
from typing import Dict, List
import logging

from ingestion.loaders.snapshot_store import SnapshotStore
from ingestion.runner import target_period
from ingestion.transformers.enricher import MetricEnricher
from models.base import Nation
from schemas.sales import ScrapedRow

logger = logging.getLogger(__name__)

DEMO_DATA_URL = "https://auto.danawa.com/auto/?Work=record"

DEMO_ROWS: Dict[Nation, List[ScrapedRow]] = {
    Nation.DOMESTIC: [
        ScrapedRow(rank=1, model_name="Grandeur", sales=8500, prev_sales=7200, rank_change=0),
        ScrapedRow(rank=2, model_name="Sorento", sales=7100, prev_sales=6800, rank_change=0),
        ScrapedRow(rank=3, model_name="Carnival", sales=6200, prev_sales=5000, rank_change=1),
        ScrapedRow(rank=4, model_name="Santa Fe", sales=5800, prev_sales=2000, rank_change=5),
        ScrapedRow(rank=5, model_name="Avante", sales=4500, prev_sales=4600, rank_change=-1),
    ],
    Nation.EXPORT: [
        ScrapedRow(rank=1, model_name="E-Class", sales=2100, prev_sales=1800, rank_change=0),
        ScrapedRow(rank=2, model_name="5 Series", sales=1900, prev_sales=2200, rank_change=-1),
        ScrapedRow(rank=3, model_name="Model Y", sales=1500, prev_sales=300, rank_change=10),
    ],
}


async def seed_demo_data(store: SnapshotStore, today: datetime = None) -> int:
    """
    Insert the demo snapshot for the month before ``today`` if storage is empty.

    Scores come from the regular enricher.

    Returns:
        Number of rows inserted, 0 if storage already had data
    """
    if await store.list_available_periods():
        logger.info("Database already has data, skipping demo seed")
        return 0

    year, month = target_period(today or datetime.now())
    inserted = 0

    for nation, rows in DEMO_ROWS.items():
        records = MetricEnricher(year, month, nation, DEMO_DATA_URL).enrich(rows)
        inserted += await store.upsert_batch(records)

    logger.info(f"Seeded {inserted} demo rows for {year}-{month:02d}")
    return inserted
