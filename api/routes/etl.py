"""
Manual ETL trigger and status polling
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from api.dependencies import get_orchestrator
from core.exceptions import EtlAlreadyRunningError
from ingestion.runner import EtlOrchestrator
from schemas.etl import EtlTriggerResponse, EtlStatusResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/etl", tags=["ETL"])


@router.post(
    "/trigger",
    response_model=EtlTriggerResponse,
    responses={409: {"model": EtlTriggerResponse, "description": "A run is already in progress"}}
)
async def trigger_etl(orchestrator: EtlOrchestrator = Depends(get_orchestrator)):
    """
    Start an ETL run in the background.

    Returns immediately; poll /api/etl/status for the outcome.
    """
    try:
        orchestrator.trigger()
    except EtlAlreadyRunningError as e:
        logger.info("ETL trigger rejected: a run is already in progress")
        return JSONResponse(
            status_code=409,
            content=EtlTriggerResponse(message=e.message, success=False).model_dump()
        )

    logger.info("ETL Job started")
    return EtlTriggerResponse(message="ETL Job started", success=True)


@router.get("/status", response_model=EtlStatusResponse)
async def etl_status(orchestrator: EtlOrchestrator = Depends(get_orchestrator)):
    """Last run time (null if never run), current status and last message"""
    snapshot = orchestrator.state.snapshot()
    return EtlStatusResponse(
        last_run=snapshot.last_run_iso,
        status=snapshot.status,
        message=snapshot.message
    )
