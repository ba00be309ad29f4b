"""Transitions API - Status workflow rules per role"""
from typing import Dict, List
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ..deps import get_actor_role_dep, get_sync_service
from ...domain.enums import ComplaintStatus, Role
from ...services.sync_service import SyncService

router = APIRouter()


class AllowedTransitionsResponse(BaseModel):
    role: str
    status: str
    allowed_next_states: List[str]
    can_edit: bool


class TransitionMatrixResponse(BaseModel):
    """role -> current status -> reachable statuses"""
    transitions: Dict[str, Dict[str, List[str]]]


@router.get("", response_model=AllowedTransitionsResponse)
async def get_allowed_transitions(
    status: ComplaintStatus = Query(...),
    role: Role = Depends(get_actor_role_dep),
    service: SyncService = Depends(get_sync_service)
):
    """Statuses the caller may move a complaint in ``status`` to"""
    allowed = service.engine.ordered_next_states(role, status)
    return AllowedTransitionsResponse(
        role=role.value,
        status=status.value,
        allowed_next_states=[s.value for s in allowed],
        can_edit=bool(allowed)
    )


@router.get("/matrix", response_model=TransitionMatrixResponse)
async def get_transition_matrix(service: SyncService = Depends(get_sync_service)):
    return TransitionMatrixResponse(transitions=service.engine.table.as_dict())
