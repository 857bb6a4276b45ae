"""
In-process ETL run status (single-flight guard)
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
import threading

from models.base import ETLStatus


@dataclass(frozen=True)
class EtlRunSnapshot:
    """Read-only copy of the run state at one instant"""
    is_running: bool
    status: ETLStatus
    last_run_at: Optional[datetime]
    message: Optional[str]

    @property
    def last_run_iso(self) -> Optional[str]:
        """ISO-8601 with an explicit UTC offset; naive times are taken as UTC"""
        if self.last_run_at is None:
            return None
        last_run = self.last_run_at
        if last_run.tzinfo is None:
            last_run = last_run.replace(tzinfo=timezone.utc)
        return last_run.astimezone(timezone.utc).isoformat()


class EtlRunState:
    """
    Owns the process-wide run status.

    Its methods are the only way to change the status. The start check and
    the completion updates share one lock, so a run finishing and a new
    trigger arriving cannot interleave. Not persisted: a restart goes back
    to IDLE with no last run.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._is_running = False
        self._status = ETLStatus.IDLE
        self._last_run_at: Optional[datetime] = None
        self._message: Optional[str] = None

    def try_start(self) -> bool:
        """Flip to RUNNING; False (state untouched) if a run is already active"""
        with self._lock:
            if self._is_running:
                return False
            self._is_running = True
            self._status = ETLStatus.RUNNING
            self._message = None
            return True

    def mark_success(self, message: Optional[str] = None, finished_at: Optional[datetime] = None):
        with self._lock:
            self._is_running = False
            self._status = ETLStatus.SUCCESS
            self._last_run_at = finished_at or datetime.now(timezone.utc)
            self._message = message

    def mark_failed(self, message: Optional[str] = None):
        # last_run_at keeps pointing at the last successful run
        with self._lock:
            self._is_running = False
            self._status = ETLStatus.FAILED
            self._message = message

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._is_running

    def snapshot(self) -> EtlRunSnapshot:
        with self._lock:
            return EtlRunSnapshot(
                is_running=self._is_running,
                status=self._status,
                last_run_at=self._last_run_at,
                message=self._message,
            )
