import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from core.config import settings
from core.exceptions import EtlAlreadyRunningError
from ingestion.runner import EtlOrchestrator

logger = logging.getLogger(__name__)


class ETLScheduler:
    """Periodically triggers the orchestrator, the same way the manual endpoint does"""

    def __init__(self, orchestrator: EtlOrchestrator, interval_hours: int = None):
        self.orchestrator = orchestrator
        self.interval_hours = interval_hours or settings.ETL_SCHEDULE_HOURS
        self.scheduler = AsyncIOScheduler()

    async def run_etl_job(self):
        """Job to start a background ETL run"""
        logger.info("Scheduler: Triggering ETL job")
        try:
            self.orchestrator.trigger()
        except EtlAlreadyRunningError:
            logger.info("Scheduler: ETL job already running, skipping this tick")

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_etl_job,
            trigger=IntervalTrigger(hours=self.interval_hours),
            id="etl_job",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.start()
        logger.info(f"ETL Scheduler started (every {self.interval_hours}h)")

    def stop(self):
        """Request shutdown; AsyncIOScheduler completes it on the next loop iteration"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("ETL Scheduler shutdown requested")
