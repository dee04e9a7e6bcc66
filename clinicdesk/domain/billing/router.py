"""Billing router - the clinic's subscription and the Dodo Payments webhook"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ...auth import get_clinic_membership, require_admin
from ...cache import mark_webhook_processed, webhook_already_processed
from ...config import DODO_PAYMENTS_WEBHOOK_SECRET
from ...database import get_db
from ...models import ClinicMembership
from ...rate_limiter import rate_limit_billing_webhook
from ...webhook_security import verify_dodo_webhook
from .schemas import (
    CancelRequest,
    CancelResponse,
    CheckoutRequest,
    CheckoutResponse,
    SubscriptionResponse,
)
from .subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clinics/{clinic_id}/subscription", tags=["Billing"])
webhooks_router = APIRouter(tags=["Webhooks"])


def get_subscription_service(db: Session = Depends(get_db)) -> SubscriptionService:
    """Dependency injection for SubscriptionService"""
    return SubscriptionService(db)


# ============================================================================
# SUBSCRIPTION MANAGEMENT
# ============================================================================


@router.get("", response_model=SubscriptionResponse)
async def get_subscription(
    clinic_id: str,
    _: ClinicMembership = Depends(get_clinic_membership),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Get current plan information"""
    return service.get_subscription(clinic_id)


@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout_session(
    clinic_id: str,
    body: CheckoutRequest,
    membership: ClinicMembership = Depends(require_admin),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Create a checkout session"""
    return await service.create_checkout_session(clinic_id, body, membership.user)


@router.post("/cancel", response_model=CancelResponse)
async def cancel_subscription(
    clinic_id: str,
    body: CancelRequest,
    _: ClinicMembership = Depends(require_admin),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Cancel subscription"""
    return await service.cancel_subscription(clinic_id, body)


# ============================================================================
# WEBHOOKS
# ============================================================================


@webhooks_router.post("/webhooks/dodopayments")
async def handle_dodopayments_webhook(
    request: Request,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_billing_webhook),
):
    """
    Verify signature and process subscription lifecycle events - Rate limited to 100 requests per minute.

    Headers:
      - 'webhook-signature': 'v1,{base64(hmac_sha256(webhook-id.webhook-timestamp.payload))}'
      - 'webhook-id': Unique webhook ID for idempotency
      - 'webhook-timestamp': Unix timestamp (seconds)
    """
    if not DODO_PAYMENTS_WEBHOOK_SECRET:
        logger.error("❌ DODO_PAYMENTS_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=500, detail="Webhook not configured")

    raw_body = await verify_dodo_webhook(request, DODO_PAYMENTS_WEBHOOK_SECRET)
    webhook_id = request.headers.get("webhook-id", "unknown")

    if webhook_already_processed(webhook_id):
        logger.info(f"🔄 Webhook {webhook_id} already processed, skipping (idempotency)")
        return {"received": True}

    try:
        event = json.loads(raw_body.decode("utf-8"))
    except ValueError as e:
        logger.error(f"Failed to parse webhook JSON: {e}")
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    logger.info(f"🔔 Webhook received id={webhook_id} type={event.get('type')}")

    try:
        SubscriptionService(db).handle_event(event)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error processing webhook {webhook_id}: {e}")
        raise HTTPException(status_code=500, detail="Webhook processing failed") from e

    mark_webhook_processed(webhook_id)
    return {"received": True}
