"""
Script to run one ETL pass for the previous month in the foreground

Usage:
    python scripts/run_etl.py [-v]
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import build_engine, build_session_factory
from core.exceptions import ETLException
from core.logging import setup_logging
from ingestion.runner import EtlOrchestrator

setup_logging("DEBUG" if "-v" in sys.argv[1:] else None)
logger = logging.getLogger(__name__)


async def run_etl() -> int:
    """Run the pipeline once; returns the process exit code"""
    engine = build_engine()

    try:
        orchestrator = EtlOrchestrator(build_session_factory(engine))
        result = await orchestrator.run_once()
        logger.info(
            f"ETL completed for {result['year']}-{result['month']:02d}: "
            f"saved={result['records_saved']}, skipped={result['nations_skipped']}"
        )
        return 0

    except ETLException as e:
        logger.error(f"ETL pipeline error: {e}")
        return 1
    finally:
        await engine.dispose()


if __name__ == "__main__":
    sys.exit(asyncio.run(run_etl()))
