# ============================================================================
# File: ingestion/runner.py
# Description: ETL orchestrator for the monthly sales snapshots
# ============================================================================
"""
ETL Orchestrator - drives Extract, Score, Replace for every nation.

This module provides:
- Target period selection (the month before the run starts)
- Per-nation extract -> enrich -> snapshot replace
- Single-flight run guard with distinct conflict reporting
- Fire-and-forget background runs whose outcome lands in EtlRunState
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Set, Tuple
import logging

from sqlalchemy.ext.asyncio import async_sessionmaker

from core.exceptions import (
    ETLException,
    EmptyResultWarning,
    EtlAlreadyRunningError,
)
from ingestion.extractors.danawa_extractor import DanawaExtractor
from ingestion.loaders.snapshot_store import SnapshotStore
from ingestion.status import EtlRunState
from ingestion.transformers.enricher import MetricEnricher
from models.base import Nation

logger = logging.getLogger(__name__)

# Processing order is fixed
NATIONS: Tuple[Nation, ...] = (Nation.DOMESTIC, Nation.EXPORT)


def target_period(now: datetime) -> Tuple[int, int]:
    """
    The calendar month before ``now``.

    The source publishes a month's figures after it closes, so the month in
    progress is never the target. January rolls back to December.
    """
    if now.month == 1:
        return now.year - 1, 12
    return now.year, now.month - 1


class EtlOrchestrator:
    """
    Runs the pipeline for all nations of the target period.

    Responsibilities:
    - Pick the target period
    - Extract, score and replace each nation's snapshot in order
    - Skip nations with no data, abort the run on any other failure
    - Guard against concurrent runs and report the outcome via EtlRunState
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        extractor: Optional[DanawaExtractor] = None,
        state: Optional[EtlRunState] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.session_factory = session_factory
        self.extractor = extractor or DanawaExtractor()
        self.state = state or EtlRunState()
        self.clock = clock
        self._background_tasks: Set[asyncio.Task] = set()

    async def run_pipeline(self) -> Dict[str, Any]:
        """
        One full pass over all nations. Does not touch the run state.

        Returns:
            Dictionary with run statistics:
            - year, month: Target period
            - records_saved: Rows written per nation
            - nations_skipped: Nations whose page had no data

        Raises:
            FetchError: If a listing page cannot be fetched
            PersistenceError: If a snapshot replace fails
            ETLException: For other failures; remaining nations are not processed
        """
        year, month = target_period(self.clock())
        records_saved: Dict[str, int] = {}
        nations_skipped = []

        for nation in NATIONS:
            logger.info(f"Starting ETL for {year}-{month:02d} ({nation.value})")

            # --------------------------------------------------
            # EXTRACT
            # --------------------------------------------------
            try:
                extracted = await self.extractor.extract(year, month, nation)
            except EmptyResultWarning as w:
                logger.warning(
                    f"No data found for {year}-{month:02d} ({nation.value}), skipping",
                    extra={"error_context": w.to_dict()}
                )
                nations_skipped.append(nation.value)
                continue

            # --------------------------------------------------
            # SCORE
            # --------------------------------------------------
            enricher = MetricEnricher(year, month, nation, extracted.url)
            records = enricher.enrich(extracted.rows)

            # --------------------------------------------------
            # REPLACE SNAPSHOT
            # --------------------------------------------------
            async with self.session_factory() as session:
                store = SnapshotStore(session)
                saved = await store.upsert_batch(records)

            records_saved[nation.value] = saved
            logger.info(f"Saved {saved} records for {year}-{month:02d} ({nation.value})")

        return {
            "year": year,
            "month": month,
            "records_saved": records_saved,
            "nations_skipped": nations_skipped
        }

    async def run_once(self) -> Dict[str, Any]:
        """
        Run the pipeline in the foreground under the single-flight guard.

        Raises:
            EtlAlreadyRunningError: If another run is in flight
            ETLException: If the run fails; the state is marked FAILED first
        """
        if not self.state.try_start():
            raise EtlAlreadyRunningError("ETL Job is already running")
        return await self._run_and_record()

    def trigger(self) -> None:
        """
        Accept a run and start it in the background.

        Returns as soon as the run is accepted; poll ``state`` for the outcome.

        Raises:
            EtlAlreadyRunningError: If another run is in flight (state unaffected)
        """
        if not self.state.try_start():
            raise EtlAlreadyRunningError("ETL Job is already running")

        task = asyncio.create_task(self._run_in_background())
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def wait_until_idle(self) -> None:
        """Wait for background runs that are still in flight"""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def _run_and_record(self) -> Dict[str, Any]:
        try:
            result = await self.run_pipeline()

        except ETLException as e:
            logger.error(
                f"ETL run failed: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            self.state.mark_failed(e.message)
            raise

        except Exception as e:
            logger.exception("Unexpected error in ETL run")
            self.state.mark_failed(f"{type(e).__name__}: {e}")
            raise

        self.state.mark_success(self._summarize(result))
        logger.info(f"ETL Job completed successfully: {self._summarize(result)}")
        return result

    async def _run_in_background(self) -> None:
        try:
            await self._run_and_record()
        except Exception as e:
            # Already logged and recorded as FAILED; nobody awaits this task
            logger.debug(f"Background ETL run ended with {type(e).__name__}")

    @staticmethod
    def _summarize(result: Dict[str, Any]) -> str:
        saved = ", ".join(f"{n}={c}" for n, c in result["records_saved"].items()) or "nothing"
        summary = f"Saved {result['year']}-{result['month']:02d}: {saved}"
        if result["nations_skipped"]:
            summary += f" (no data: {', '.join(result['nations_skipped'])})"
        return summary
