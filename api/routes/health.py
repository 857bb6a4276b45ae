"""
Health check endpoint with database and ETL status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from api.dependencies import get_db, get_orchestrator
from ingestion.loaders.snapshot_store import SnapshotStore
from ingestion.runner import EtlOrchestrator
from models.base import ETLStatus, Nation
from schemas.etl import HealthCheckResponse
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    orchestrator: EtlOrchestrator = Depends(get_orchestrator)
):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Current ETL run status
    - Number of periods with stored data
    - Latest stored period per nation
    """
    db_connected = False
    available_periods = 0
    latest_periods = {}

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
        store = SnapshotStore(db)
        available_periods = len(await store.list_available_periods())
        for nation in Nation:
            latest = await store.latest_period(nation)
            latest_periods[nation.value] = f"{latest[0]}-{latest[1]:02d}" if latest else None
    except Exception as e:
        logger.error(f"Database check failed: {str(e)}")

    snapshot = orchestrator.state.snapshot()

    if not db_connected:
        status = "unhealthy"
    elif snapshot.status == ETLStatus.FAILED:
        status = "degraded"
    else:
        status = "healthy"

    return HealthCheckResponse(
        status=status,
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        etl_status=snapshot.status,
        etl_last_run=snapshot.last_run_iso,
        available_periods=available_periods,
        latest_periods=latest_periods
    )
