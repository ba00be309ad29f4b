"""Sync Orchestrator - Initial fetch, live channel and snapshot publication"""
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from ..domain.enums import ConnectionState
from ..domain.errors import InvalidStateError
from ..domain.models import ChangeNotification, ComplaintSnapshot, SyncStatus
from .backoff import BackoffPolicy
from .connection_manager import ConnectionManager, Connector
from .events import RawMessage
from .reconciler import DEFAULT_MAX_SIZE, EventReconciler
from ..utils.idgen import generate_subscription_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

Fetcher = Callable[[], Awaitable[List[Mapping[str, Any]]]]
SnapshotListener = Callable[[ComplaintSnapshot], None]
StatusListener = Callable[[ConnectionState], None]


class SyncOrchestrator:
    """
    Owns the complaint snapshot and wires fetch + live channel into it.

    Every path into the snapshot (initial fetch, manual refresh, live
    messages, local write confirmations) goes through the EventReconciler,
    and every resulting snapshot is published to the subscribers. Once
    stopped, nothing is published again; fetches that complete after
    stop() are discarded.
    """

    def __init__(
        self,
        fetch_complaints: Fetcher,
        live_url: str,
        *,
        connector: Optional[Connector] = None,
        backoff: Optional[BackoffPolicy] = None,
        connect_timeout: float = 10.0,
        max_size: int = DEFAULT_MAX_SIZE
    ):
        self._fetch = fetch_complaints
        self._reconciler = EventReconciler(max_size=max_size)
        self._snapshot = self._reconciler.empty()
        self._connection = ConnectionManager(
            live_url,
            self.on_live_message,
            connector=connector,
            backoff=backoff,
            connect_timeout=connect_timeout,
            on_state_change=self._publish_state
        )
        self._listeners: Dict[str, SnapshotListener] = {}
        self._state_listeners: Dict[str, StatusListener] = {}
        self._last_refreshed_at: Optional[datetime] = None
        self._started = False
        self._stopped = False

    # ------------------------------------------------------------------
    # Published surface
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> ComplaintSnapshot:
        return self._snapshot

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection.state

    @property
    def connection(self) -> ConnectionManager:
        return self._connection

    @property
    def is_running(self) -> bool:
        return self._started and not self._stopped

    def status(self) -> SyncStatus:
        return SyncStatus(
            state=self._connection.state,
            attempt=self._connection.attempt,
            snapshot_version=self._snapshot.version,
            complaint_count=len(self._snapshot),
            last_refreshed_at=self._last_refreshed_at
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a snapshot listener; returns its unsubscribe callable"""
        return self._register(self._listeners, listener)

    def subscribe_status(self, listener: StatusListener) -> Callable[[], None]:
        """Register a connectivity listener; returns its unsubscribe callable"""
        return self._register(self._state_listeners, listener)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> ComplaintSnapshot:
        """
        Initial full fetch, then open the live channel.

        The live channel is started even when the initial fetch fails;
        the fetch error is still raised to the caller.
        """
        if self._stopped:
            raise InvalidStateError("Sync orchestrator has been stopped")
        if self._started:
            return self._snapshot
        self._started = True

        try:
            await self.refresh()
        finally:
            if not self._stopped:
                self._connection.connect()
        return self._snapshot

    async def refresh(self) -> ComplaintSnapshot:
        """
        Re-fetch everything and replace the snapshot.

        Works regardless of live channel state. On fetch failure the
        error propagates and the snapshot is left untouched.
        """
        if self._stopped:
            raise InvalidStateError("Sync orchestrator has been stopped")

        try:
            records = await self._fetch()
        except Exception as e:
            logger.warning(f"Complaint fetch failed: {e}")
            raise

        if self._stopped:
            logger.debug("Discarding fetch result received after stop")
            return self._snapshot

        snapshot = self._reconciler.replace_all(self._snapshot, records)
        self._last_refreshed_at = utc_now()
        self._commit(snapshot)
        logger.info(
            f"Snapshot refreshed with {len(snapshot)} complaint(s)",
            extra={"count": len(snapshot), "version": snapshot.version}
        )
        return snapshot

    async def stop(self) -> None:
        """Shut down the live channel; no publications after this"""
        if self._stopped:
            return
        self._stopped = True
        await self._connection.shutdown()
        self._listeners.clear()
        self._state_listeners.clear()
        logger.info("Sync orchestrator stopped")

    # ------------------------------------------------------------------
    # Reconciliation entry points
    # ------------------------------------------------------------------

    def on_live_message(self, raw: RawMessage) -> None:
        """Reconcile one raw live frame"""
        if self._stopped:
            return
        snapshot = self._reconciler.apply_raw(self._snapshot, raw)
        if snapshot is not self._snapshot:
            self._commit(snapshot)

    def apply_local(self, change: ChangeNotification) -> ComplaintSnapshot:
        """Reconcile a locally synthesized change (write confirmations)"""
        if self._stopped:
            return self._snapshot
        snapshot = self._reconciler.apply(self._snapshot, change)
        if snapshot is not self._snapshot:
            self._commit(snapshot)
        return self._snapshot

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _commit(self, snapshot: ComplaintSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners.values()):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener failed")

    def _publish_state(self, state: ConnectionState) -> None:
        if self._stopped:
            return
        for listener in list(self._state_listeners.values()):
            try:
                listener(state)
            except Exception:
                logger.exception("Connection state listener failed")

    @staticmethod
    def _register(registry: Dict[str, Callable], listener: Callable) -> Callable[[], None]:
        subscription_id = generate_subscription_id()
        registry[subscription_id] = listener

        def unsubscribe() -> None:
            registry.pop(subscription_id, None)

        return unsubscribe
