"""Sync API - Connectivity status and manual recovery"""
from fastapi import APIRouter, Depends

from ..deps import get_sync_service
from ...domain.models import SyncStatus
from ...services.sync_service import SyncService
from ...utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/status", response_model=SyncStatus)
async def get_sync_status(service: SyncService = Depends(get_sync_service)):
    """Live channel state, retry attempt and snapshot freshness"""
    return service.orchestrator.status()


@router.post("/refresh", response_model=SyncStatus)
async def refresh_snapshot(service: SyncService = Depends(get_sync_service)):
    """
    Re-fetch all complaints and replace the snapshot.

    Works whether or not the live channel is up. On failure the snapshot
    is left as it was and the upstream error is returned.
    """
    await service.orchestrator.refresh()
    return service.orchestrator.status()


@router.post("/reconnect", response_model=SyncStatus)
async def reconnect_live_channel(service: SyncService = Depends(get_sync_service)):
    """Retry the live channel now instead of waiting out the backoff"""
    logger.info("Manual live channel reconnect requested")
    service.orchestrator.connection.reconnect_now()
    return service.orchestrator.status()
