"""API module - Routes and dependencies"""
from .deps import get_actor_role_dep, get_sync_service

__all__ = ["get_actor_role_dep", "get_sync_service"]
