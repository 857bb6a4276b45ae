"""
ETL pipeline components for the monthly sales snapshots.

Modules:
    runner: Orchestrator that drives extract, score and replace per nation
    status: In-process run status and single-flight guard
    scheduler: APScheduler integration for periodic triggers
    seed: Demo data for an empty database

Subpackages:
    extractors: Markup capability and the Danawa listing extractor
    transformers: Z-score normalizer and metric enricher
    loaders: Snapshot store with transactional replace

Architecture:
    For each nation of the target period:

    1. Extract - Fetch the listing page and parse rows, skipping bad ones
    2. Score - Derive momentum metrics and the batch-relative composite score
    3. Replace - Delete the old snapshot and insert the new one in one transaction

    A nation with no rows is skipped; any other failure aborts the run.

Usage:
    from core.database import async_session_maker
    from ingestion.runner import EtlOrchestrator

Example:
    orchestrator = EtlOrchestrator(async_session_maker)

    # Background run, poll orchestrator.state.snapshot() for the outcome
    orchestrator.trigger()

    # Or run in the foreground
    result = await orchestrator.run_once()
    print(f"Saved {result['records_saved']}")

Error Handling:
    All components raise exceptions from core.exceptions so failures carry
    the URL, period and nation they happened on.
"""

__all__ = [
    "EtlOrchestrator",
    "EtlRunState",
    "ETLScheduler",
    "DanawaExtractor",
    "MetricEnricher",
    "SnapshotStore",
]
