"""
Webhook Routes

Handle incoming webhooks from Stripe.
"""

from fastapi import APIRouter, Depends, Header, HTTPException, Request
import structlog

from billrelay.api.deps import get_billing_service, get_reconciler
from billrelay.core.errors import (
    EventVerificationError,
    MemberStoreError,
    MissingEventDataError,
    PaymentProviderError,
)
from billrelay.core.reconciler import EventReconciler
from billrelay.integrations.stripe import BillingService

router = APIRouter()
logger = structlog.get_logger()


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
    billing: BillingService = Depends(get_billing_service),
    reconciler: EventReconciler = Depends(get_reconciler),
) -> dict:
    """Verify a Stripe event and reconcile the member it refers to."""
    if not stripe_signature:
        raise HTTPException(status_code=400, detail="Webhook Error: Missing Stripe-Signature header")

    payload = await request.body()

    try:
        event = await billing.construct_event(payload, stripe_signature)
    except EventVerificationError as e:
        logger.warning("Webhook verification failed", error=e.reason)
        raise HTTPException(status_code=400, detail=f"Webhook Error: {e.reason}")
    except PaymentProviderError as e:
        logger.error("Webhook decoding failed", error=str(e))
        raise HTTPException(status_code=500, detail="Internal Server Error")

    try:
        result = await reconciler.reconcile(event)
    except MissingEventDataError as e:
        logger.warning("Webhook rejected", event_type=e.event_type, missing=e.missing)
        raise HTTPException(status_code=400, detail="Bad Request: Missing data")
    except MemberStoreError as e:
        logger.error("Database error", event_type=event.event_type, error=str(e))
        raise HTTPException(status_code=500, detail="Internal Server Error")
    except Exception as e:
        logger.exception("Webhook processing failed", event_type=event.event_type, error=str(e))
        raise HTTPException(status_code=500, detail="Internal Server Error")

    logger.info("Stripe webhook processed", result=result.model_dump())
    return result.model_dump()
