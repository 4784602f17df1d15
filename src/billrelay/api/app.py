"""
billrelay FastAPI Application

Main application factory and configuration.
"""

from contextlib import asynccontextmanager
import time
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from billrelay import __version__
from billrelay.config import Settings, get_settings
from billrelay.core.reconciler import EventReconciler
from billrelay.integrations.stripe import BillingService

from .routes import billing, health, webhooks

logger = structlog.get_logger()


# ══════════════════════════════════════════════════════════════
# Lifespan Management
# ══════════════════════════════════════════════════════════════


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings: Settings = app.state.settings

    logger.info(
        "Starting billrelay API",
        version=__version__,
        environment=settings.app_env,
    )

    from billrelay.db import close_db, init_db
    from billrelay.db.store import SQLAlchemyMemberStore

    owns_db = app.state.reconciler is None
    if owns_db:
        session_factory = await init_db(settings)
        app.state.reconciler = EventReconciler(
            SQLAlchemyMemberStore(session_factory),
            timeout=settings.store_timeout_seconds,
        )

    logger.info("billrelay API started successfully")

    yield

    logger.info("Shutting down billrelay API")

    if owns_db:
        await close_db()
        app.state.reconciler = None

    logger.info("billrelay API shutdown complete")


# ══════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════


def create_app(
    settings: Settings | None = None,
    billing_service: BillingService | None = None,
    reconciler: EventReconciler | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The member store is opened in the lifespan unless a reconciler is supplied.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="billrelay API",
        description="Stripe billing webhook relay for member subscriptions",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.billing = billing_service or BillingService(settings)
    app.state.reconciler = reconciler

    # ──────────────────────────────────────────────────────────
    # Middleware
    # ──────────────────────────────────────────────────────────

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing."""
        start = time.perf_counter()

        response = await call_next(request)

        duration = (time.perf_counter() - start) * 1000
        logger.info(
            "Request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round(duration, 2),
        )

        return response

    # ──────────────────────────────────────────────────────────
    # Routes
    # ──────────────────────────────────────────────────────────

    # Health checks (no auth required)
    app.include_router(
        health.router,
        tags=["Health"],
    )

    api_prefix = f"/api/{settings.api_version}"

    app.include_router(
        billing.router,
        prefix=f"{api_prefix}/billing",
        tags=["Billing"],
    )

    app.include_router(
        webhooks.router,
        prefix=f"{api_prefix}/webhooks",
        tags=["Webhooks"],
    )

    return app
