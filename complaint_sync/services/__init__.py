"""Service modules - Composition and lifecycle"""
from .sync_service import SyncService

__all__ = ["SyncService"]
