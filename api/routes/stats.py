"""
Sales ranking endpoints consumed by the dashboard
"""

from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError as PydanticValidationError
from ingestion.loaders.snapshot_store import SnapshotStore, StatsFilter
from api.dependencies import get_store
from core.exceptions import ValidationError
from models.base import Nation
from schemas.etl import ErrorResponse
from schemas.sales import SalesRecordResponse, PeriodResponse, StatsQueryParams
from typing import List, Optional
import time
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/stats", tags=["Statistics"])


# Query parameter names as the client sends them
QUERY_NAMES = {"min_sales": "minSales", "include_new": "includeNew"}


def _parse_filters(**params) -> StatsQueryParams:
    try:
        return StatsQueryParams(**params)
    except PydanticValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]) if error.get("loc") else None
        field = QUERY_NAMES.get(field, field)
        raise ValidationError(
            f"Invalid value for {field}: {error['msg']}",
            context={"field": field, "value": error.get("input")}
        )


@router.get(
    "",
    response_model=List[SalesRecordResponse],
    responses={400: {"model": ErrorResponse, "description": "Malformed filter value"}}
)
async def list_stats(
    request: Request,
    year: Optional[int] = Query(None, description="Snapshot year"),
    month: Optional[int] = Query(None, description="Snapshot month (1-12)"),
    nation: Optional[Nation] = Query(None, description="domestic or export"),
    min_sales: Optional[int] = Query(None, alias="minSales", description="Inclusive minimum sales"),
    include_new: Optional[bool] = Query(
        None, alias="includeNew", description="false drops new entrants (prevSales = 0)"
    ),
    store: SnapshotStore = Depends(get_store)
):
    """
    Ranked snapshot rows, highest momentum score first.

    Every filter is optional; an absent filter places no constraint.
    """
    start_time = time.time()
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")

    params = _parse_filters(
        year=year,
        month=month,
        nation=nation,
        min_sales=min_sales,
        include_new=include_new
    )

    logger.info(
        f"[{request_id}] GET /api/stats - year={params.year}, month={params.month}, "
        f"nation={params.nation}, min_sales={params.min_sales}, include_new={params.include_new}"
    )

    rows = await store.list_stats(StatsFilter(**params.model_dump()))
    data = [SalesRecordResponse.model_validate(row) for row in rows]

    logger.info(
        f"[{request_id}] Returned {len(data)} rows ({(time.time() - start_time) * 1000:.2f}ms)"
    )
    return data


@router.get("/months", response_model=List[PeriodResponse])
async def list_months(store: SnapshotStore = Depends(get_store)):
    """Periods with stored data, most recent first"""
    periods = await store.list_available_periods()
    return [PeriodResponse(year=year, month=month) for year, month in periods]
