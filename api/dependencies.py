"""
FastAPI dependencies shared by the routers
"""

from typing import AsyncGenerator
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from core.database import get_session
from ingestion.loaders.snapshot_store import SnapshotStore
from ingestion.runner import EtlOrchestrator


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Database session for one request"""
    async for session in get_session():
        yield session


def get_store(db: AsyncSession = Depends(get_db)) -> SnapshotStore:
    return SnapshotStore(db)


def get_orchestrator(request: Request) -> EtlOrchestrator:
    """The process-wide orchestrator created at app construction"""
    return request.app.state.orchestrator
