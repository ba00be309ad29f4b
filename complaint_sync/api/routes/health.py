"""Health API - Liveness and service info (unversioned)"""
from fastapi import APIRouter, Depends

from ..deps import get_sync_service
from ... import __version__
from ...config.settings import settings
from ...domain.enums import ConnectionState
from ...services.sync_service import SyncService

router = APIRouter()


@router.get("/health")
async def health(service: SyncService = Depends(get_sync_service)):
    """
    Degraded while the live channel is down: complaints are still served
    from the snapshot but may be stale.
    """
    status = service.orchestrator.status()
    return {
        "status": "healthy" if status.state == ConnectionState.CONNECTED else "degraded",
        "version": __version__,
        "environment": settings.environment,
        "live_channel": status.state.value,
        "snapshot_version": status.snapshot_version,
        "complaint_count": status.complaint_count
    }


@router.get("/")
async def root():
    return {
        "name": "Complaint Sync Service",
        "version": __version__,
        "docs": "/api/docs" if settings.debug else None
    }
