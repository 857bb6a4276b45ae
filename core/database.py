"""
Async engine and session factories shared by the API, the ETL scripts and tests
"""

from typing import AsyncGenerator, Optional
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


def build_engine(url: Optional[str] = None, poolclass: type = NullPool) -> AsyncEngine:
    """
    Engine for ``url`` (DATABASE_URL by default).

    SQL is echoed only in development. Tests pass StaticPool so an
    in-memory SQLite database survives across sessions.
    """
    url = url or settings.DATABASE_URL
    logger.debug(f"Creating engine for {url.split('@')[-1]}")
    return create_async_engine(
        url,
        echo=settings.ENVIRONMENT == "development",
        poolclass=poolclass,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    """Sessions keep loaded rows usable after commit; the store commits per snapshot"""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


engine = build_engine()

# Used by API requests and background ETL runs alike
async_session_maker = build_session_factory(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


async def dispose_engine():
    """Close pooled connections on shutdown"""
    await engine.dispose()
    logger.info("Database engine disposed")
