"""
Billing Routes

Hosted checkout and billing portal sessions for the frontend.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import AliasChoices, BaseModel, Field
import structlog

from billrelay.api.deps import get_billing_service
from billrelay.core.errors import PaymentProviderError
from billrelay.core.models import BillingPeriod
from billrelay.integrations.stripe import PLAN_PERIODS, BillingService

router = APIRouter()
logger = structlog.get_logger()


# ══════════════════════════════════════════════════════════════
# Models
# ══════════════════════════════════════════════════════════════


class CheckoutRequest(BaseModel):
    """Request to create a checkout session."""

    member_id: str = Field(validation_alias=AliasChoices("member_id", "firebase_id"))
    email: str
    plan: str | None = Field(default=None, validation_alias=AliasChoices("plan", "selectedPack"))


class PortalRequest(BaseModel):
    """Request to create a billing portal session."""

    customer_id: str = Field(validation_alias=AliasChoices("customer_id", "customerId"))


class SessionURLResponse(BaseModel):
    """Redirect target for a hosted Stripe page."""

    url: str


class PlanResponse(BaseModel):
    plan: str
    billing_period: BillingPeriod
    price_id: str


# ══════════════════════════════════════════════════════════════
# Routes
# ══════════════════════════════════════════════════════════════


@router.post("/checkout-session", response_model=SessionURLResponse)
async def create_checkout_session(
    request: CheckoutRequest,
    billing: BillingService = Depends(get_billing_service),
) -> SessionURLResponse:
    """Create a Stripe checkout session for a premium subscription."""
    try:
        session = await billing.create_member_checkout(
            member_id=request.member_id,
            email=request.email,
            plan=request.plan,
        )
    except PaymentProviderError as e:
        logger.error("Error creating checkout session", member_id=request.member_id, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))

    return SessionURLResponse(url=session.url)


@router.post("/portal-session", response_model=SessionURLResponse)
async def create_portal_session(
    request: PortalRequest,
    billing: BillingService = Depends(get_billing_service),
) -> SessionURLResponse:
    """Create a Stripe billing portal session."""
    try:
        url = await billing.create_billing_portal(request.customer_id)
    except PaymentProviderError:
        raise HTTPException(status_code=500, detail="Unable to create billing portal session")

    return SessionURLResponse(url=url)


@router.get("/plans", response_model=list[PlanResponse])
async def list_plans(
    billing: BillingService = Depends(get_billing_service),
) -> list[PlanResponse]:
    """List recognised plan tokens and the price each resolves to."""
    return [
        PlanResponse(
            plan=plan,
            billing_period=period,
            price_id=billing.price_for_period(period),
        )
        for plan, period in PLAN_PERIODS.items()
    ]
