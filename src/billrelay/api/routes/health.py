"""Health check endpoints."""

import asyncio

from fastapi import APIRouter, Depends, Response
import structlog

from billrelay import __version__
from billrelay.api.deps import get_app_settings, get_member_store
from billrelay.config import Settings
from billrelay.core.errors import MemberStoreError
from billrelay.db.store import MemberStore

logger = structlog.get_logger()

router = APIRouter()


@router.get("/")
async def root() -> dict:
    return {"message": "server is running"}


@router.get("/health")
async def health_check() -> dict:
    """Basic health check."""
    return {
        "status": "healthy",
        "version": __version__,
    }


@router.get("/health/ready")
async def readiness_check(
    store: MemberStore | None = Depends(get_member_store),
    settings: Settings = Depends(get_app_settings),
):
    """Readiness check: the member store must answer."""
    if store is None:
        return Response(status_code=503, content="Member store not configured")

    try:
        await asyncio.wait_for(store.ping(), timeout=settings.store_timeout_seconds)
    except (MemberStoreError, asyncio.TimeoutError) as e:
        logger.warning("Readiness check failed", error=str(e))
        return Response(status_code=503, content="Database not ready")

    return {"status": "ready"}


@router.get("/health/live")
async def liveness_check() -> dict:
    """Liveness check."""
    return {"status": "alive"}
