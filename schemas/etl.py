"""
Pydantic schemas for ETL control and health endpoints
"""

from pydantic import BaseModel, Field
from typing import Dict, Optional
from datetime import datetime
from models.base import ETLStatus


class EtlTriggerResponse(BaseModel):
    """Answer to a manual trigger; success is False on conflict"""
    message: str
    success: bool


class EtlStatusResponse(BaseModel):
    """Current run status as polled by the dashboard"""
    last_run: Optional[str] = Field(
        None,
        alias="lastRun",
        description="ISO-8601 completion time of the last successful run, null if never run"
    )
    status: ETLStatus
    message: Optional[str] = None

    class Config:
        populate_by_name = True
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "lastRun": "2024-06-01T03:00:12.345678",
                "status": "success",
                "message": "Saved 2024-05: domestic=120, export=80"
            }
        }


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    etl_status: ETLStatus
    etl_last_run: Optional[str] = None
    available_periods: int = 0
    latest_periods: Dict[str, Optional[str]] = Field(
        default_factory=dict,
        description="Most recent stored YYYY-MM per nation, null if none"
    )

    class Config:
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-06-01T10:30:00Z",
                "database_connected": True,
                "etl_status": "success",
                "etl_last_run": "2024-06-01T03:00:12.345678",
                "available_periods": 4,
                "latest_periods": {"domestic": "2024-05", "export": "2024-05"}
            }
        }


class ErrorResponse(BaseModel):
    """Client error body; field names the offending query parameter"""
    message: str
    field: Optional[str] = None
