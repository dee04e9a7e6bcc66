"""Subscription service - Business logic for the clinic's own plan"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import invalidate_subscription_access_cache
from ...config import DODO_PRODUCT_ID_BASIC, DODO_PRODUCT_ID_PRO, FRONTEND_URL
from ...models import (
    PLAN_BASIC,
    PLAN_ENTERPRISE,
    PLAN_PRO,
    SUB_ACTIVE,
    SUB_CANCELLED,
    SUB_PAST_DUE,
    Subscription,
    User,
)
from ...plan_limits import count_active_doctors, get_doctor_limit, subscription_has_access
from ...shared.timeutils import utcnow
from . import dodo_service as dodo_module
from .repository import BillingRepository
from .schemas import CancelRequest, CheckoutRequest

logger = logging.getLogger(__name__)

ACTIVATING_EVENTS = ("subscription.active", "subscription.renewed", "subscription.plan_changed")
PAST_DUE_EVENTS = ("subscription.on_hold", "subscription.failed")
CANCELLING_EVENTS = ("subscription.cancelled", "subscription.canceled", "subscription.expired")

KNOWN_PLANS = (PLAN_BASIC, PLAN_PRO, PLAN_ENTERPRISE)


def get_product_id(plan: str) -> Optional[str]:
    return {PLAN_BASIC: DODO_PRODUCT_ID_BASIC, PLAN_PRO: DODO_PRODUCT_ID_PRO}.get(plan)


def plan_for_product(product_id: Optional[str]) -> Optional[str]:
    if not product_id:
        return None
    for plan in (PLAN_BASIC, PLAN_PRO):
        if get_product_id(plan) == product_id:
            return plan
    return None


def parse_provider_datetime(value: Optional[str]) -> Optional[datetime]:
    """ISO-8601 from the provider (usually with a Z suffix) -> naive UTC"""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"⚠️ Unparseable provider datetime: {value}")
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def major_amount(amount_lowest: Optional[int], currency: Optional[str]) -> float:
    """Convert from the lowest denomination to major units"""
    if amount_lowest is None:
        return 0.0
    if (currency or "USD").upper() in {"JPY", "KRW"}:
        return float(amount_lowest)
    return round(amount_lowest / 100.0, 2)


def _field(obj: Any, *names: str) -> Optional[Any]:
    """Read the first present attribute or key; SDK responses are models, fakes are dicts"""
    for name in names:
        value = obj.get(name) if isinstance(obj, dict) else getattr(obj, name, None)
        if value:
            return value
    return None


class SubscriptionService:
    """Service for subscription management"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BillingRepository()

    def _get_subscription(self, clinic_id: str) -> Subscription:
        subscription = self.repo.get_subscription(self.db, clinic_id)
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")
        return subscription

    def get_subscription(self, clinic_id: str) -> dict:
        """Current plan, access and doctor usage"""
        subscription = self.repo.get_subscription(self.db, clinic_id)
        now = utcnow()
        plan = subscription.current_plan if subscription else None

        trial_days_left = None
        if subscription and subscription.trial_ends_at:
            seconds_left = (subscription.trial_ends_at - now).total_seconds()
            trial_days_left = max(0, math.ceil(seconds_left / 86400))

        return {
            "plan": plan,
            "status": subscription.status if subscription else None,
            "trial_ends_at": subscription.trial_ends_at if subscription else None,
            "current_period_end": subscription.current_period_end if subscription else None,
            "cancel_at_period_end": bool(subscription and subscription.cancel_at_period_end),
            "has_access": subscription_has_access(subscription, now),
            "trial_days_left": trial_days_left,
            "doctor_limit": get_doctor_limit(plan),
            "active_doctors": count_active_doctors(clinic_id, self.db),
        }

    async def create_checkout_session(
        self, clinic_id: str, request: CheckoutRequest, user: User
    ) -> dict:
        """Hosted checkout; the plan is applied when the activation webhook arrives"""
        product_id = get_product_id(request.plan)
        if not product_id:
            raise HTTPException(
                status_code=400, detail=f"Plan {request.plan} is not available for purchase"
            )

        service = dodo_module.dodo_service
        if not service.is_available():
            raise HTTPException(status_code=503, detail="Billing service temporarily unavailable")

        return_url = f"{FRONTEND_URL}{request.return_path or '/settings/billing?checkout=success'}"
        metadata = {"clinic_id": clinic_id, "plan": request.plan}

        try:
            response = await service.create_checkout_session(
                product_id=product_id,
                customer_email=user.email,
                customer_name=user.full_name,
                return_url=return_url,
                metadata=metadata,
            )
        except Exception as e:
            logger.error(f"❌ Failed to create checkout session for clinic {clinic_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create checkout session") from e

        session_id = _field(response, "session_id", "id")
        logger.info(f"✅ Created checkout session for clinic {clinic_id}: {session_id}")
        return {
            "checkout_url": _field(response, "checkout_url", "url"),
            "session_id": session_id,
        }

    async def cancel_subscription(self, clinic_id: str, request: CancelRequest) -> dict:
        """
        Cancel at the provider. Local status follows the provider's webhook
        unless access is revoked right away.
        """
        subscription = self._get_subscription(clinic_id)
        if not subscription.dodo_subscription_id:
            raise HTTPException(status_code=400, detail="No active subscription found")

        service = dodo_module.dodo_service
        if not service.is_available():
            raise HTTPException(status_code=503, detail="Billing service temporarily unavailable")

        try:
            await service.cancel_subscription(
                subscription_id=subscription.dodo_subscription_id,
                cancel_at_period_end=request.cancel_at_period_end and not request.revoke_access_now,
            )
        except Exception as e:
            logger.error(f"❌ Failed to cancel subscription for clinic {clinic_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to cancel subscription") from e

        if request.revoke_access_now:
            self.repo.update_subscription(
                self.db, subscription, status=SUB_CANCELLED, dodo_subscription_id=None
            )
            message = "Subscription canceled and access revoked immediately"
        elif request.cancel_at_period_end:
            self.repo.update_subscription(self.db, subscription, cancel_at_period_end=True)
            message = "Subscription will be canceled at the end of the billing period"
        else:
            message = "Subscription cancellation requested"

        invalidate_subscription_access_cache(clinic_id)
        logger.info(f"✅ Canceled subscription for clinic {clinic_id}: {message}")
        return {"message": message, "status": subscription.status}

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    def _find_subscription(self, data: dict) -> Optional[Subscription]:
        """Locate by metadata clinic_id first, then by the stored provider id"""
        meta = data.get("metadata") or {}
        clinic_id = meta.get("clinic_id")
        if clinic_id:
            subscription = self.repo.get_subscription(self.db, clinic_id)
            if subscription:
                return subscription
            if self.repo.get_clinic(self.db, clinic_id):
                # Clinics registered before subscriptions existed
                return self.repo.create_subscription(self.db, clinic_id)

        subscription_id = data.get("subscription_id")
        if subscription_id:
            return self.repo.get_subscription_by_dodo_id(self.db, subscription_id)
        return None

    def handle_event(self, event: dict) -> None:
        """Apply one verified webhook event to local state"""
        event_type = event.get("type")
        data = event.get("data") or {}

        if event_type in ACTIVATING_EVENTS:
            self._activate(event_type, data)
        elif event_type in PAST_DUE_EVENTS:
            self._set_status(event_type, data, status=SUB_PAST_DUE)
        elif event_type in CANCELLING_EVENTS:
            self._set_status(event_type, data, status=SUB_CANCELLED, clear_subscription_id=True)
        elif event_type == "payment.succeeded":
            self._record_payment(data)
        else:
            logger.info(f"Event {event_type} received and ignored (no handler)")

    def _activate(self, event_type: str, data: dict) -> None:
        subscription = self._find_subscription(data)
        if not subscription:
            logger.warning(f"⚠️ {event_type}: no clinic matches {data.get('metadata')}")
            return

        meta = data.get("metadata") or {}
        plan = (meta.get("plan") or "").upper()
        if plan not in KNOWN_PLANS:
            plan = plan_for_product(data.get("product_id")) or PLAN_BASIC

        customer = data.get("customer") or {}
        self.repo.update_subscription(
            self.db,
            subscription,
            status=SUB_ACTIVE,
            current_plan=plan,
            dodo_subscription_id=data.get("subscription_id") or subscription.dodo_subscription_id,
            dodo_customer_id=customer.get("customer_id") or subscription.dodo_customer_id,
            current_period_end=(
                parse_provider_datetime(data.get("next_billing_date"))
                or subscription.current_period_end
            ),
            cancel_at_period_end=bool(data.get("cancel_at_next_billing_date")),
            trial_ends_at=None,
        )
        invalidate_subscription_access_cache(subscription.clinic_id)
        logger.info(f"✅ Clinic {subscription.clinic_id} is now {SUB_ACTIVE} on {plan} ({event_type})")

    def _set_status(
        self, event_type: str, data: dict, status: str, clear_subscription_id: bool = False
    ) -> None:
        subscription = self._find_subscription(data)
        if not subscription:
            logger.warning(f"⚠️ {event_type}: no clinic matches subscription {data.get('subscription_id')}")
            return

        updates = {"status": status}
        if clear_subscription_id:
            updates["dodo_subscription_id"] = None
            updates["cancel_at_period_end"] = False
        self.repo.update_subscription(self.db, subscription, **updates)
        invalidate_subscription_access_cache(subscription.clinic_id)
        logger.warning(f"⚠️ Clinic {subscription.clinic_id} subscription -> {status} ({event_type})")

    def _record_payment(self, data: dict) -> None:
        payment_id = data.get("payment_id")
        if not payment_id:
            logger.warning("⚠️ payment.succeeded without payment_id")
            return
        if self.repo.payment_exists(self.db, payment_id):
            logger.info(f"🔄 Payment {payment_id} already recorded")
            return

        subscription = self._find_subscription(data)
        if not subscription:
            logger.warning(f"⚠️ payment.succeeded {payment_id}: no clinic matches")
            return

        amount_lowest = data.get("total_amount")
        currency = data.get("currency") or "USD"
        customer = data.get("customer") or {}
        self.repo.record_payment(
            self.db,
            clinic_id=subscription.clinic_id,
            dodo_payment_id=payment_id,
            dodo_subscription_id=data.get("subscription_id"),
            dodo_customer_id=customer.get("customer_id"),
            amount=major_amount(amount_lowest, currency),
            amount_lowest_unit=amount_lowest,
            currency=currency,
            status=data.get("status") or "succeeded",
            paid_at=parse_provider_datetime(data.get("created_at")) or utcnow(),
        )
        logger.info(f"💳 Recorded payment {payment_id} for clinic {subscription.clinic_id}")
