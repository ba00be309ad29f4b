"""Background jobs"""
from .stale_refresher import StaleSnapshotRefresher

__all__ = ["StaleSnapshotRefresher"]
