"""API Routes module"""
from fastapi import APIRouter

from .complaints import router as complaints_router
from .transitions import router as transitions_router
from .sync import router as sync_router

# Main API router
api_router = APIRouter()

api_router.include_router(complaints_router, prefix="/complaints", tags=["Complaints"])
api_router.include_router(transitions_router, prefix="/transitions", tags=["Transitions"])
api_router.include_router(sync_router, prefix="/sync", tags=["Sync"])

__all__ = ["api_router"]
