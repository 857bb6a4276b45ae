"""
Integration tests for snapshot persistence against a real database
"""

import pytest
from core.exceptions import InvalidBatchError, PersistenceError
from ingestion.loaders.snapshot_store import StatsFilter
from models.base import Nation


@pytest.mark.asyncio
async def test_upsert_replaces_whole_snapshot(store, make_record):
    await store.upsert_batch([
        make_record("Grandeur", 1),
        make_record("Sorento", 2),
        make_record("Avante", 3),
    ])

    saved = await store.upsert_batch([
        make_record("Sorento", 1, sales=9000),
        make_record("Carnival", 2),
    ])

    rows = await store.list_stats()
    assert saved == 2
    assert sorted(r.model_name for r in rows) == ["Carnival", "Sorento"]
    assert next(r for r in rows if r.model_name == "Sorento").sales == 9000


@pytest.mark.asyncio
async def test_upsert_leaves_other_snapshots_alone(store, make_record):
    await store.upsert_batch([make_record("Grandeur", 1)])
    await store.upsert_batch([make_record("E-Class", 1, nation=Nation.EXPORT)])
    await store.upsert_batch([make_record("Avante", 1, month=4)])

    await store.upsert_batch([make_record("Sorento", 1)])

    rows = await store.list_stats()
    assert sorted((r.month, r.nation, r.model_name) for r in rows) == [
        (4, "domestic", "Avante"),
        (5, "domestic", "Sorento"),
        (5, "export", "E-Class"),
    ]


@pytest.mark.asyncio
async def test_rows_share_one_updated_at(store, make_record):
    await store.upsert_batch([make_record("Grandeur", 1), make_record("Sorento", 2)])

    rows = await store.list_stats()
    assert rows[0].updated_at is not None
    assert rows[0].updated_at == rows[1].updated_at


@pytest.mark.asyncio
async def test_empty_batch_is_a_no_op(store, make_record):
    await store.upsert_batch([make_record("Grandeur", 1)])

    assert await store.upsert_batch([]) == 0
    assert len(await store.list_stats()) == 1


@pytest.mark.asyncio
async def test_mixed_keys_are_rejected(store, make_record):
    with pytest.raises(InvalidBatchError):
        await store.upsert_batch([
            make_record("Grandeur", 1),
            make_record("E-Class", 1, nation=Nation.EXPORT),
        ])

    assert await store.list_stats() == []


@pytest.mark.asyncio
async def test_failed_replace_keeps_previous_snapshot(store, make_record):
    await store.upsert_batch([make_record("Grandeur", 1), make_record("Sorento", 2)])

    with pytest.raises(PersistenceError) as exc_info:
        await store.upsert_batch([
            make_record("Avante", 1),
            make_record("Avante", 2),
        ])

    assert exc_info.value.context["operation"] == "REPLACE"
    rows = await store.list_stats()
    assert sorted(r.model_name for r in rows) == ["Grandeur", "Sorento"]


@pytest.mark.asyncio
async def test_list_stats_orders_by_score_then_rank(store, make_record):
    await store.upsert_batch([
        make_record("Grandeur", 1, score=0.1),
        make_record("Sorento", 2, score=0.9),
        make_record("Avante", 4, score=-0.5),
        make_record("Carnival", 3, score=0.1),
    ])

    rows = await store.list_stats()

    assert [r.model_name for r in rows] == ["Sorento", "Grandeur", "Carnival", "Avante"]


@pytest.mark.asyncio
async def test_list_stats_filters(store, make_record):
    await store.upsert_batch([
        make_record("Grandeur", 1, sales=8500, prev_sales=7200),
        make_record("Casper EV", 2, sales=500, prev_sales=0),
        make_record("Avante", 3, sales=4500, prev_sales=4600),
    ])
    await store.upsert_batch([make_record("E-Class", 1, nation=Nation.EXPORT, sales=2100)])
    await store.upsert_batch([make_record("Ray", 1, month=4, sales=3000)])

    by_nation = await store.list_stats(StatsFilter(nation=Nation.EXPORT))
    assert [r.model_name for r in by_nation] == ["E-Class"]

    by_period = await store.list_stats(StatsFilter(year=2024, month=4))
    assert [r.model_name for r in by_period] == ["Ray"]

    min_sales = await store.list_stats(StatsFilter(month=5, nation=Nation.DOMESTIC, min_sales=4500))
    assert sorted(r.model_name for r in min_sales) == ["Avante", "Grandeur"]

    no_new = await store.list_stats(StatsFilter(month=5, nation=Nation.DOMESTIC, include_new=False))
    assert "Casper EV" not in [r.model_name for r in no_new]
    assert all(r.prev_sales > 0 for r in no_new)

    with_new = await store.list_stats(StatsFilter(month=5, nation=Nation.DOMESTIC, include_new=True))
    assert len(with_new) == 3

    nothing = await store.list_stats(StatsFilter(year=2019))
    assert nothing == []


@pytest.mark.asyncio
async def test_available_periods_most_recent_first(store, make_record):
    assert await store.list_available_periods() == []

    await store.upsert_batch([make_record("Grandeur", 1, month=4)])
    await store.upsert_batch([make_record("Grandeur", 1, month=3)])
    await store.upsert_batch([make_record("Grandeur", 1, month=5)])
    await store.upsert_batch([make_record("E-Class", 1, month=5, nation=Nation.EXPORT)])

    assert await store.list_available_periods() == [(2024, 5), (2024, 4), (2024, 3)]


@pytest.mark.asyncio
async def test_latest_period_per_nation(store, make_record):
    await store.upsert_batch([make_record("Grandeur", 1, year=2023, month=12)])
    await store.upsert_batch([make_record("Grandeur", 1, year=2024, month=1)])
    await store.upsert_batch([make_record("E-Class", 1, year=2023, month=11, nation=Nation.EXPORT)])

    assert await store.latest_period(Nation.DOMESTIC) == (2024, 1)
    assert await store.latest_period(Nation.EXPORT) == (2023, 11)


@pytest.mark.asyncio
async def test_latest_period_empty(store):
    assert await store.latest_period(Nation.DOMESTIC) is None
