"""
Plan limits and subscription access rules for clinics.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from .cache import get_subscription_access_cached, set_subscription_access_cached
from .models import (
    PLAN_BASIC,
    PLAN_ENTERPRISE,
    PLAN_PRO,
    SUB_ACTIVE,
    SUB_PAST_DUE,
    SUB_TRIALING,
    Doctor,
    Subscription,
)
from .shared.timeutils import utcnow

logger = logging.getLogger(__name__)

# Active doctors allowed per plan; None means unlimited
PLAN_DOCTOR_LIMITS = {PLAN_BASIC: 3, PLAN_PRO: 10, PLAN_ENTERPRISE: None}

# Monthly list price in USD, shown on the billing page
PLAN_PRICES = {PLAN_BASIC: 29, PLAN_PRO: 79, PLAN_ENTERPRISE: None}


def get_doctor_limit(plan: Optional[str]) -> Optional[int]:
    """Doctor limit for a plan. Unknown plans fall back to BASIC."""
    if not plan:
        return PLAN_DOCTOR_LIMITS[PLAN_BASIC]
    return PLAN_DOCTOR_LIMITS.get(plan.upper(), PLAN_DOCTOR_LIMITS[PLAN_BASIC])


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def subscription_snapshot(subscription: Optional[Subscription]) -> dict:
    """JSON-safe view of the fields access checks need"""
    if subscription is None:
        return {"status": None, "plan": None, "trial_ends_at": None, "current_period_end": None}
    return {
        "status": subscription.status,
        "plan": subscription.current_plan,
        "trial_ends_at": (
            subscription.trial_ends_at.isoformat() if subscription.trial_ends_at else None
        ),
        "current_period_end": (
            subscription.current_period_end.isoformat()
            if subscription.current_period_end
            else None
        ),
    }


def snapshot_has_access(snapshot: dict, now: Optional[datetime] = None) -> bool:
    """
    ACTIVE always has access. TRIALING has access until trial_ends_at.
    PAST_DUE keeps access until the paid period runs out.
    """
    now = now or utcnow()
    status = snapshot.get("status")
    if status == SUB_ACTIVE:
        return True
    if status == SUB_TRIALING:
        trial_ends_at = _parse(snapshot.get("trial_ends_at"))
        return trial_ends_at is not None and trial_ends_at > now
    if status == SUB_PAST_DUE:
        period_end = _parse(snapshot.get("current_period_end"))
        return period_end is not None and period_end > now
    return False


def subscription_has_access(subscription: Optional[Subscription], now=None) -> bool:
    return snapshot_has_access(subscription_snapshot(subscription), now)


def get_clinic_access_snapshot(clinic_id: str, db: Session) -> dict:
    """Subscription snapshot for a clinic, served from Redis when warm"""
    snapshot = get_subscription_access_cached(clinic_id)
    if snapshot is not None:
        return snapshot

    subscription = db.query(Subscription).filter(Subscription.clinic_id == clinic_id).first()
    snapshot = subscription_snapshot(subscription)
    set_subscription_access_cached(clinic_id, snapshot)
    return snapshot


def count_active_doctors(clinic_id: str, db: Session, exclude_doctor_id: Optional[int] = None) -> int:
    query = db.query(Doctor).filter(Doctor.clinic_id == clinic_id, Doctor.is_active.is_(True))
    if exclude_doctor_id is not None:
        query = query.filter(Doctor.id != exclude_doctor_id)
    return query.count()


def can_add_doctor(
    clinic_id: str, db: Session, exclude_doctor_id: Optional[int] = None
) -> tuple[bool, Optional[str]]:
    """
    Check if the clinic can have one more active doctor.
    Returns (can_add, error_message).
    """
    snapshot = get_clinic_access_snapshot(clinic_id, db)
    limit = get_doctor_limit(snapshot.get("plan"))

    if limit is None:
        return (True, None)

    current = count_active_doctors(clinic_id, db, exclude_doctor_id)
    if current < limit:
        return (True, None)

    plan = snapshot.get("plan") or PLAN_BASIC
    logger.info(f"ℹ️ Clinic {clinic_id} at doctor limit {current}/{limit} on plan {plan}")
    return (
        False,
        f"Your {plan} plan allows up to {limit} active doctors. Please upgrade to add more doctors.",
    )
