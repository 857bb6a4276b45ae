"""
Pytest configuration and fixtures
"""

import os

# Must be set before core.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

import asyncio
from datetime import datetime
from typing import AsyncGenerator, Dict, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import build_engine, build_session_factory
from core.exceptions import EmptyResultWarning
from ingestion.extractors.danawa_extractor import ExtractResult
from ingestion.loaders.snapshot_store import SnapshotStore
from models.base import Base, Nation
from models.car_sales import CarSales  # noqa: F401
from schemas.sales import ScrapedRow, SalesRecordCreate

# Test database URL (one shared in-memory connection)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine"""
    engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return build_session_factory(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(db_session) -> SnapshotStore:
    return SnapshotStore(db_session)


@pytest.fixture
def make_record():
    """Factory for valid SalesRecordCreate rows"""

    def _make(
        model_name: str,
        rank: int,
        sales: int = 1000,
        prev_sales: int = 900,
        score: float = 0.0,
        year: int = 2024,
        month: int = 5,
        nation: Nation = Nation.DOMESTIC,
        rank_change: int = 0,
    ) -> SalesRecordCreate:
        mom_abs = sales - prev_sales
        return SalesRecordCreate(
            year=year,
            month=month,
            nation=nation,
            model_name=model_name,
            sales=sales,
            rank=rank,
            prev_sales=prev_sales,
            mom_abs=mom_abs,
            mom_pct=5.0 if prev_sales <= 0 else min(mom_abs / prev_sales, 5.0),
            rank_change=rank_change,
            score=score,
            data_url=f"https://example.test/?Month={year}-{month:02d}-00&Nation={Nation(nation).value}",
        )

    return _make


@pytest.fixture
def domestic_rows() -> List[ScrapedRow]:
    return [
        ScrapedRow(rank=1, model_name="Grandeur", sales=8500, prev_sales=7200, rank_change=0),
        ScrapedRow(rank=2, model_name="Sorento", sales=7100, prev_sales=6800, rank_change=0),
        ScrapedRow(rank=3, model_name="Santa Fe", sales=5800, prev_sales=2000, rank_change=5),
    ]


@pytest.fixture
def export_rows() -> List[ScrapedRow]:
    return [
        ScrapedRow(rank=1, model_name="E-Class", sales=2100, prev_sales=1800, rank_change=0),
        ScrapedRow(rank=2, model_name="Model Y", sales=1500, prev_sales=0, rank_change=10),
    ]


class FakeExtractor:
    """Stands in for DanawaExtractor; pages and errors are keyed by nation value"""

    def __init__(
        self,
        pages: Optional[Dict[str, List[ScrapedRow]]] = None,
        errors: Optional[Dict[str, Exception]] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.pages = pages or {}
        self.errors = errors or {}
        self.gate = gate
        self.calls = []

    async def extract(self, year: int, month: int, nation: Nation) -> ExtractResult:
        nation = Nation(nation)
        self.calls.append((year, month, nation.value))
        if self.gate is not None:
            await self.gate.wait()

        url = f"https://example.test/?Month={year}-{month:02d}-00&Nation={nation.value}"
        if nation.value in self.errors:
            raise self.errors[nation.value]

        rows = self.pages.get(nation.value, [])
        if not rows:
            raise EmptyResultWarning("No data rows on listing page", context={"url": url})
        return ExtractResult(rows=rows, url=url)


@pytest.fixture
def fake_extractor_cls():
    return FakeExtractor


@pytest.fixture
def fixed_clock():
    """Runs 'happen' mid-June 2024, so the target period is 2024-05"""
    return lambda: datetime(2024, 6, 15, 9, 30)


def render_listing(rows: List[Dict[str, str]]) -> str:
    """Build a record table page shaped like the live site"""
    body = []
    for row in rows:
        body.append(
            "<tr>"
            f"<td class=\"rank\">{row.get('rank', '')}</td>"
            f"<td class=\"title\"><a href=\"#\">{row.get('name', '')}</a></td>"
            f"<td class=\"sales\">{row.get('sales', '')}</td>"
            f"<td class=\"diff\">{row.get('diff', '')}</td>"
            f"<td class=\"rankChange\">{row.get('rank_change', '')}</td>"
            "</tr>"
        )
    return (
        "<html><body>"
        "<table class=\"recordTable\">"
        "<thead><tr><th>순위</th><th>모델</th><th>판매량</th><th>증감</th><th>순위변동</th></tr></thead>"
        f"<tbody>{''.join(body)}</tbody>"
        "</table>"
        "</body></html>"
    )


@pytest.fixture
def listing_html():
    """Factory turning row dicts into a listing page"""
    return render_listing


@pytest.fixture
def sample_listing_html() -> str:
    """A page with data rows mixed with the junk the live site carries"""
    return render_listing([
        {"rank": "1", "name": "Grandeur", "sales": "8,500", "diff": "▲1,300", "rank_change": "-"},
        {"rank": "AD", "name": "Sponsored", "sales": "0", "diff": "", "rank_change": ""},
        {"rank": "2", "name": "Sorento", "sales": "7,100", "diff": "▲300", "rank_change": ""},
        {"rank": "3", "name": "  ", "sales": "6,900", "diff": "▼100", "rank_change": "▲1"},
        {"rank": "4", "name": "Avante", "sales": "4,500", "diff": "▼100", "rank_change": "▼1"},
        {"rank": "5", "name": "Casper EV", "sales": "", "diff": "NEW", "rank_change": "NEW"},
    ])
