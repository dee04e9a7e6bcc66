"""Billing domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator


class CheckoutRequest(BaseModel):
    """Schema for creating a checkout session"""

    plan: Literal["BASIC", "PRO"]
    return_path: Optional[str] = None  # e.g. "/settings/billing?checkout=success"

    @field_validator("return_path")
    @classmethod
    def validate_return_path(cls, v: Optional[str]) -> Optional[str]:
        # Only same-site paths; the host always comes from FRONTEND_URL
        if v is None:
            return v
        if not v.startswith("/") or v.startswith("//"):
            raise ValueError("return_path must be a path starting with '/'")
        return v


class CheckoutResponse(BaseModel):
    checkout_url: Optional[str] = None
    session_id: Optional[str] = None


class CancelRequest(BaseModel):
    """Schema for canceling subscription"""

    cancel_at_period_end: bool = True
    revoke_access_now: bool = False


class CancelResponse(BaseModel):
    message: str
    status: str


class SubscriptionResponse(BaseModel):
    """Schema for the clinic's current plan"""

    plan: Optional[str] = None
    status: Optional[str] = None
    trial_ends_at: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    has_access: bool
    trial_days_left: Optional[int] = None
    doctor_limit: Optional[int] = None
    active_doctors: int = 0
