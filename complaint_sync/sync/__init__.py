"""Real-time complaint synchronization"""
from .backoff import BackoffPolicy
from .connection_manager import ConnectionManager, websocket_connector
from .events import parse_envelope
from .orchestrator import SyncOrchestrator
from .reconciler import EventReconciler
from .status_writer import StatusUpdateCoordinator

__all__ = [
    "BackoffPolicy",
    "ConnectionManager",
    "websocket_connector",
    "parse_envelope",
    "SyncOrchestrator",
    "EventReconciler",
    "StatusUpdateCoordinator",
]
