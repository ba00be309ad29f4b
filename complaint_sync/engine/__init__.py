"""Status Engine - Role-scoped transition rules"""
from .permission_table import (
    DEFAULT_PERMISSION_TABLE,
    DEFAULT_TRANSITIONS,
    TransitionPermissionTable,
)
from .transition_engine import StatusTransitionEngine

__all__ = [
    "DEFAULT_PERMISSION_TABLE",
    "DEFAULT_TRANSITIONS",
    "TransitionPermissionTable",
    "StatusTransitionEngine",
]
