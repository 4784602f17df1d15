"""FastAPI dependencies resolving the components wired by the app factory."""

from fastapi import Request

from billrelay.config import Settings
from billrelay.core.reconciler import EventReconciler
from billrelay.db.store import MemberStore
from billrelay.integrations.stripe import BillingService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_billing_service(request: Request) -> BillingService:
    return request.app.state.billing


def get_reconciler(request: Request) -> EventReconciler:
    return request.app.state.reconciler


def get_member_store(request: Request) -> MemberStore | None:
    """Store behind the wired reconciler, None before startup."""
    reconciler = request.app.state.reconciler
    return reconciler.store if reconciler is not None else None
