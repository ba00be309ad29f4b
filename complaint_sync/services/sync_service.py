"""Sync Service - composition root for the synchronization layer"""
from typing import Optional

from ..config.settings import Settings
from ..domain.errors import DomainError
from ..engine.transition_engine import StatusTransitionEngine
from ..repositories.complaint_api import ComplaintApiClient
from ..scheduler.stale_refresher import StaleSnapshotRefresher
from ..sync.backoff import BackoffPolicy
from ..sync.connection_manager import Connector, websocket_connector
from ..sync.orchestrator import SyncOrchestrator
from ..sync.status_writer import StatusUpdateCoordinator
from ..utils.logger import get_logger

logger = get_logger(__name__)


class SyncService:
    """
    Everything a projection needs, with one lifecycle.

    - orchestrator: snapshot + live channel
    - status_writer: staged status updates
    - engine: transition rules for affordances
    - refresher: stale-snapshot recovery job (optional)
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        status_writer: StatusUpdateCoordinator,
        engine: Optional[StatusTransitionEngine] = None,
        refresher: Optional[StaleSnapshotRefresher] = None
    ):
        self.orchestrator = orchestrator
        self.status_writer = status_writer
        self.engine = engine or StatusTransitionEngine()
        self.refresher = refresher

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        api_client: Optional[ComplaintApiClient] = None,
        connector: Optional[Connector] = None
    ) -> "SyncService":
        """Wire the production components from configuration"""
        api_client = api_client or ComplaintApiClient.from_settings(settings)
        engine = StatusTransitionEngine()

        orchestrator = SyncOrchestrator(
            api_client.list_complaints,
            settings.live_channel_endpoint,
            connector=connector or websocket_connector(settings.ws_ping_interval_seconds),
            backoff=BackoffPolicy.from_settings(settings),
            connect_timeout=settings.ws_connect_timeout_seconds,
            max_size=settings.snapshot_max_size
        )
        return cls(
            orchestrator=orchestrator,
            status_writer=StatusUpdateCoordinator(orchestrator, api_client.update_status, engine),
            engine=engine,
            refresher=StaleSnapshotRefresher(orchestrator, settings.stale_refresh_interval_seconds)
        )

    async def start(self) -> None:
        """Start syncing; an initial fetch failure is logged, not fatal"""
        try:
            await self.orchestrator.start()
        except DomainError as e:
            logger.error(
                f"Initial complaint fetch failed, continuing with live updates: {e.message}",
                extra={"error_code": e.error_code}
            )
        except Exception as e:
            logger.error(
                f"Initial complaint sync failed, continuing with live updates: {e!r}",
                exc_info=True
            )
        if self.refresher:
            self.refresher.start()

    async def stop(self) -> None:
        if self.refresher:
            self.refresher.stop()
        await self.orchestrator.stop()
