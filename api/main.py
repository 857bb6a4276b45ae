"""
FastAPI application initialization
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from api.routes import health, stats, etl
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.database import async_session_maker, dispose_engine
from core.exceptions import ValidationError
from schemas.etl import ErrorResponse
from core.logging import setup_logging
from ingestion.loaders.snapshot_store import SnapshotStore
from ingestion.runner import EtlOrchestrator
from ingestion.scheduler import ETLScheduler
from ingestion.seed import seed_demo_data
import logging

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Car Sales Momentum API",
    description="Monthly car sales rankings with momentum scores",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
app.add_middleware(RequestContextMiddleware)

# One orchestrator per process; it owns the run status
app.state.orchestrator = EtlOrchestrator(async_session_maker)

scheduler = ETLScheduler(app.state.orchestrator)


# Include routers
app.include_router(health.router)
app.include_router(stats.router)
app.include_router(etl.router)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    """Malformed query parameters are a client error, never a crash"""
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(message=exc.message, field=exc.context.get("field")).model_dump()
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    error = exc.errors()[0] if exc.errors() else {}
    loc = [str(part) for part in error.get("loc", ()) if part not in ("query", "body", "path")]
    field = loc[0] if loc else None
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            message=f"Invalid value for {field}: {error.get('msg', 'invalid request')}",
            field=field
        ).model_dump()
    )


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Car Sales Momentum API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    if settings.SEED_DEMO_DATA:
        async with async_session_maker() as session:
            await seed_demo_data(SnapshotStore(session))

    if settings.ETL_SCHEDULE_ENABLED:
        scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Car Sales Momentum API")
    if settings.ETL_SCHEDULE_ENABLED:
        scheduler.stop()
    await app.state.orchestrator.wait_until_idle()
    await dispose_engine()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Car Sales Momentum API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "stats": "/api/stats",
            "months": "/api/stats/months",
            "etl_trigger": "/api/etl/trigger",
            "etl_status": "/api/etl/status"
        }
    }
