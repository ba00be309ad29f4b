"""Complaints API - Read projections over the live snapshot and status changes"""
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..deps import get_actor_role_dep, get_sync_service
from ...domain.enums import ComplaintCategory, ComplaintPriority, ComplaintStatus, Role
from ...domain.errors import ComplaintNotFoundError
from ...domain.models import Complaint, SnapshotSummary
from ...services.sync_service import SyncService
from ...sync.projections import filter_complaints, summarize
from ...utils.time import format_iso
from ...utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# Request/Response Models
# =============================================================================

class ComplaintResponse(BaseModel):
    """Single complaint as shown in lists and detail views"""
    id: str
    title: str
    description: str
    category: str
    priority: str
    status: str
    reporter_name: Optional[str] = None
    reporter_email: Optional[str] = None
    attachments: List[Any] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_complaint(cls, complaint: Complaint) -> "ComplaintResponse":
        reporter = complaint.reporter
        return cls(
            id=complaint.id,
            title=complaint.title,
            description=complaint.description,
            category=complaint.category.value,
            priority=complaint.priority.value,
            status=complaint.status.value,
            reporter_name=reporter.name if reporter else None,
            reporter_email=reporter.email if reporter else None,
            attachments=list(complaint.attachments),
            created_at=format_iso(complaint.created_at) if complaint.created_at else None,
            updated_at=format_iso(complaint.updated_at) if complaint.updated_at else None
        )


class ComplaintListResponse(BaseModel):
    """Filtered page of the snapshot plus freshness metadata"""
    items: List[ComplaintResponse]
    total: int
    skip: int
    limit: int
    snapshot_version: int
    connection_state: str


class ComplaintDetailResponse(BaseModel):
    """Complaint with the status affordances for the calling role"""
    complaint: ComplaintResponse
    allowed_next_states: List[str]
    can_edit: bool


class StatusUpdateRequest(BaseModel):
    """Request to change a complaint's status"""
    status: ComplaintStatus
    note: str = Field("", max_length=2000)


def _detail(service: SyncService, complaint: Complaint, role: Role) -> ComplaintDetailResponse:
    allowed = service.engine.ordered_next_states(role, complaint.status)
    return ComplaintDetailResponse(
        complaint=ComplaintResponse.from_complaint(complaint),
        allowed_next_states=[s.value for s in allowed],
        can_edit=bool(allowed)
    )


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=ComplaintListResponse)
async def list_complaints(
    status: Optional[ComplaintStatus] = Query(None),
    category: Optional[ComplaintCategory] = Query(None),
    priority: Optional[ComplaintPriority] = Query(None),
    reporter_email: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    service: SyncService = Depends(get_sync_service)
):
    """
    List complaints from the synchronized snapshot.

    - Newest first (createdAt descending)
    - Filters combine with AND; search matches title and description
    - Never calls the REST API; freshness is reported alongside
    """
    snapshot = service.orchestrator.snapshot
    matches = filter_complaints(
        snapshot,
        status=status,
        category=category,
        priority=priority,
        reporter_email=reporter_email,
        search=search
    )

    return ComplaintListResponse(
        items=[ComplaintResponse.from_complaint(c) for c in matches[skip:skip + limit]],
        total=len(matches),
        skip=skip,
        limit=limit,
        snapshot_version=snapshot.version,
        connection_state=service.orchestrator.connection_state.value
    )


@router.get("/stats", response_model=SnapshotSummary)
async def get_complaint_stats(service: SyncService = Depends(get_sync_service)):
    """Counts per status, priority and category"""
    return summarize(service.orchestrator.snapshot)


@router.get("/{complaint_id}", response_model=ComplaintDetailResponse)
async def get_complaint(
    complaint_id: str,
    role: Role = Depends(get_actor_role_dep),
    service: SyncService = Depends(get_sync_service)
):
    """Complaint detail with the statuses the caller may move it to"""
    complaint = service.orchestrator.snapshot.get(complaint_id)
    if complaint is None:
        raise ComplaintNotFoundError(
            f"Complaint {complaint_id} not found",
            details={"complaint_id": complaint_id}
        )
    return _detail(service, complaint, role)


@router.patch("/{complaint_id}/status", response_model=ComplaintDetailResponse)
async def update_complaint_status(
    complaint_id: str,
    request: StatusUpdateRequest,
    role: Role = Depends(get_actor_role_dep),
    service: SyncService = Depends(get_sync_service)
):
    """
    Change a complaint's status.

    Checked against the transition rules for the caller's role before
    anything is sent upstream. The snapshot shows the new status
    immediately and is rolled back if the upstream write fails.
    """
    complaint = await service.status_writer.update_status(
        role, complaint_id, request.status, request.note
    )
    return _detail(service, complaint, role)
