"""Stale Snapshot Refresher - periodic full refetch while the live channel is down

Live deletions missed while disconnected only disappear on a full refetch.
This job runs refresh() on an interval, but only while the channel is not
CONNECTED; with a healthy channel the live feed keeps the snapshot current.
"""
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..domain.enums import ConnectionState
from ..domain.errors import DomainError
from ..sync.orchestrator import SyncOrchestrator
from ..utils.idgen import generate_correlation_id
from ..utils.logger import get_logger, set_correlation_id

logger = get_logger(__name__)

JOB_ID = "refresh_stale_snapshot"


class StaleSnapshotRefresher:
    """APScheduler interval job around SyncOrchestrator.refresh()"""

    def __init__(self, orchestrator: SyncOrchestrator, interval_seconds: int = 60):
        self.orchestrator = orchestrator
        self.interval_seconds = interval_seconds
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False
        self._refresh_count = 0

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running"""
        return self._is_running

    @property
    def refresh_count(self) -> int:
        """Refreshes performed by this job"""
        return self._refresh_count

    def start(self) -> None:
        """Start the scheduler (no-op when disabled or already running)"""
        if self._is_running:
            logger.warning("Stale snapshot refresher already running")
            return
        if self.interval_seconds <= 0:
            logger.info("Stale snapshot refresher disabled")
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.refresh_if_stale,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            name="Refresh complaint snapshot while live channel is down",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.start()
        self._is_running = True
        logger.info(
            "Stale snapshot refresher started",
            extra={"delay_seconds": self.interval_seconds}
        )

    def stop(self) -> None:
        """Stop the scheduler"""
        if self.scheduler:
            self.scheduler.shutdown(wait=False)
            self.scheduler = None
        if self._is_running:
            self._is_running = False
            logger.info("Stale snapshot refresher stopped")

    async def refresh_if_stale(self) -> bool:
        """
        Refresh when the live channel is not connected.

        Returns:
            True if a refresh ran and succeeded
        """
        if not self.orchestrator.is_running:
            return False
        if self.orchestrator.connection_state == ConnectionState.CONNECTED:
            return False

        set_correlation_id(generate_correlation_id())
        try:
            await self.orchestrator.refresh()
        except DomainError as e:
            logger.error(
                f"Stale snapshot refresh failed: {e.message}",
                extra={"error_code": e.error_code}
            )
            return False
        except Exception as e:
            logger.error(f"Stale snapshot refresh failed: {e!r}", exc_info=True)
            return False

        self._refresh_count += 1
        logger.info(
            "Refreshed snapshot while live channel is down",
            extra={"state": self.orchestrator.connection_state.value, "count": self._refresh_count}
        )
        return True
