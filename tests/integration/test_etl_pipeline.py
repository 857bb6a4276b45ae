"""
Integration tests for the complete ETL pipeline: HTML page -> scored snapshot rows
"""

import httpx
import pytest
from sqlalchemy import select

from core.exceptions import SourceRejectedError
from ingestion.extractors.danawa_extractor import DanawaExtractor
from ingestion.loaders.snapshot_store import SnapshotStore
from ingestion.runner import EtlOrchestrator
from models.base import ETLStatus, Nation
from models.car_sales import CarSales


def _site(pages, status_codes=None):
    """MockTransport serving one listing page per Nation query value"""
    requests = []

    def handler(request):
        requests.append(request)
        nation = request.url.params.get("Nation")
        status = (status_codes or {}).get(nation, 200)
        return httpx.Response(status, text=pages.get(nation, ""))

    return httpx.MockTransport(handler), requests


def _extractor(transport):
    return DanawaExtractor(
        base_url="https://auto.danawa.com/auto/",
        transport=transport,
        max_retries=2,
        retry_delay=0
    )


async def _rows(session_factory):
    async with session_factory() as session:
        result = await session.execute(select(CarSales))
        return list(result.scalars().all())


@pytest.fixture
def domestic_page(listing_html):
    return listing_html([
        {"rank": "1", "name": "Grandeur", "sales": "8,500", "diff": "▲1,300", "rank_change": "-"},
        {"rank": "2", "name": "Sorento", "sales": "7,100", "diff": "▲300", "rank_change": "-"},
        {"rank": "3", "name": "Santa Fe", "sales": "5,800", "diff": "▲3,800", "rank_change": "▲5"},
    ])


@pytest.fixture
def export_page(listing_html):
    return listing_html([
        {"rank": "1", "name": "E-Class", "sales": "2,100", "diff": "▲300", "rank_change": "-"},
        {"rank": "2", "name": "Model Y", "sales": "1,500", "diff": "NEW", "rank_change": "NEW"},
    ])


@pytest.mark.asyncio
async def test_full_pipeline_integration(session_factory, fixed_clock, domestic_page, export_page):
    """
    Integration test: Fetch → Parse → Score → Replace → Verify
    """
    transport, requests = _site({"domestic": domestic_page, "export": export_page})
    orchestrator = EtlOrchestrator(session_factory, extractor=_extractor(transport), clock=fixed_clock)

    result = await orchestrator.run_once()

    assert result["records_saved"] == {"domestic": 3, "export": 2}
    assert [r.url.params["Month"] for r in requests] == ["2024-05-00", "2024-05-00"]
    assert [r.url.params["Nation"] for r in requests] == ["domestic", "export"]

    rows = await _rows(session_factory)
    assert len(rows) == 5

    for row in rows:
        # Derived fields stay consistent with the scraped ones
        assert row.mom_abs == row.sales - row.prev_sales
        if row.prev_sales <= 0:
            assert row.mom_pct == 5.0
        else:
            assert row.mom_pct == pytest.approx(min(row.mom_abs / row.prev_sales, 5.0))
        assert row.data_url.endswith(f"Nation={row.nation}&Tab=Model&Work=record")

    grandeur = next(r for r in rows if r.model_name == "Grandeur")
    assert grandeur.prev_sales == 7200

    santa_fe = next(r for r in rows if r.model_name == "Santa Fe")
    assert santa_fe.rank_change == 5

    for nation in ("domestic", "export"):
        assert sum(r.score for r in rows if r.nation == nation) == pytest.approx(0.0, abs=1e-9)

    assert orchestrator.state.snapshot().status == ETLStatus.SUCCESS


@pytest.mark.asyncio
async def test_rerun_replaces_snapshot(session_factory, fixed_clock, listing_html, domestic_page):
    transport, _ = _site({"domestic": domestic_page})
    await EtlOrchestrator(session_factory, extractor=_extractor(transport), clock=fixed_clock).run_once()

    smaller_page = listing_html([
        {"rank": "1", "name": "Sorento", "sales": "9,000", "diff": "▲1,900", "rank_change": "▲1"},
    ])
    transport, _ = _site({"domestic": smaller_page})
    await EtlOrchestrator(session_factory, extractor=_extractor(transport), clock=fixed_clock).run_once()

    rows = await _rows(session_factory)
    assert [(r.model_name, r.rank, r.score) for r in rows] == [("Sorento", 1, 0.0)]


@pytest.mark.asyncio
async def test_rejected_page_leaves_stored_periods_untouched(
    session_factory, fixed_clock, make_record, domestic_page
):
    async with session_factory() as session:
        await SnapshotStore(session).upsert_batch([make_record("Avante", 1, month=4)])
        await SnapshotStore(session).upsert_batch(
            [make_record("E-Class", 1, month=5, nation=Nation.EXPORT)]
        )

    transport, requests = _site(
        {"domestic": domestic_page},
        status_codes={"export": 403}
    )
    orchestrator = EtlOrchestrator(session_factory, extractor=_extractor(transport), clock=fixed_clock)

    with pytest.raises(SourceRejectedError):
        await orchestrator.run_once()

    rows = await _rows(session_factory)
    assert sorted((r.month, r.nation, r.model_name) for r in rows) == [
        (4, "domestic", "Avante"),
        (5, "domestic", "Grandeur"),
        (5, "domestic", "Santa Fe"),
        (5, "domestic", "Sorento"),
        (5, "export", "E-Class"),
    ]

    snapshot = orchestrator.state.snapshot()
    assert snapshot.status == ETLStatus.FAILED
    assert "403" in snapshot.message
