"""
Complaint Sync Service - FastAPI entry point

Keeps a live, reconciled snapshot of complaints (initial REST fetch plus
the websocket change feed) and serves read projections and role-checked
status changes over HTTP.
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config.settings import settings
from .api.routes import api_router
from .api.routes.health import router as health_router
from .api.middleware import CorrelationIdMiddleware, register_error_handlers
from .services.sync_service import SyncService
from .utils.logger import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: initial fetch (failure logged, not fatal), live channel,
    stale snapshot refresher. Shutdown: all of it, channel closed with 1000.
    """
    service: Optional[SyncService] = app.state.sync_service
    if service is None:
        service = SyncService.from_settings(settings)
        app.state.sync_service = service

    logger.info(f"Starting Complaint Sync Service ({settings.environment})")
    await service.start()
    logger.info(
        f"Serving {len(service.orchestrator.snapshot)} complaint(s)",
        extra={"count": len(service.orchestrator.snapshot)}
    )

    yield

    await service.stop()
    logger.info("Complaint Sync Service stopped")


def create_app(sync_service: Optional[SyncService] = None) -> FastAPI:
    """
    Build the application.

    Args:
        sync_service: Pre-wired service (tests, embedding); built from
            settings at startup when omitted
    """
    docs_enabled = settings.debug
    application = FastAPI(
        title="Complaint Sync Service",
        description="Real-time complaint synchronization with role-scoped status transitions",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs" if docs_enabled else None,
        redoc_url="/api/redoc" if docs_enabled else None,
        openapi_url="/api/openapi.json" if docs_enabled else None,
    )
    application.state.sync_service = sync_service

    # allow_credentials must be False when all origins are allowed
    allow_all_origins = settings.cors_origins.strip() == "*"
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all_origins else settings.cors_origins_list,
        allow_credentials=not allow_all_origins,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-Id"],
    )
    application.add_middleware(CorrelationIdMiddleware)

    register_error_handlers(application)

    application.include_router(health_router, tags=["Health"])
    application.include_router(api_router, prefix="/api/v1")
    return application


app = create_app()
