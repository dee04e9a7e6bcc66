"""Clinic repository - Database operations for clinics"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import (
    PLAN_BASIC,
    QUEUE_STATUSES,
    ROLE_ADMIN,
    STATUS_COMPLETED,
    STATUS_NO_SHOW,
    SUB_TRIALING,
    Appointment,
    Clinic,
    ClinicMembership,
    Subscription,
)
from ...models_invoice import INVOICE_PAID, Invoice


class ClinicRepository:
    """Repository for clinic database operations"""

    @staticmethod
    def get_clinic(db: Session, clinic_id: str) -> Optional[Clinic]:
        return db.query(Clinic).filter(Clinic.id == clinic_id).first()

    @staticmethod
    def slugs_with_prefix(db: Session, base_slug: str) -> set[str]:
        """All existing slugs equal to base_slug or starting with base_slug-"""
        rows = (
            db.query(Clinic.slug)
            .filter((Clinic.slug == base_slug) | (Clinic.slug.like(f"{base_slug}-%")))
            .all()
        )
        return {row[0] for row in rows}

    @staticmethod
    def create_clinic_with_owner(
        db: Session,
        owner_id: int,
        name: str,
        slug: str,
        timezone: str,
        trial_ends_at: datetime,
        phone: Optional[str] = None,
        address: Optional[str] = None,
    ) -> Clinic:
        """Clinic, ADMIN membership and trial subscription in one transaction"""
        clinic = Clinic(
            name=name,
            slug=slug,
            timezone=timezone,
            phone=phone,
            address=address,
            owner_id=owner_id,
        )
        db.add(clinic)
        db.flush()

        db.add(ClinicMembership(user_id=owner_id, clinic_id=clinic.id, role=ROLE_ADMIN))
        db.add(
            Subscription(
                clinic_id=clinic.id,
                status=SUB_TRIALING,
                current_plan=PLAN_BASIC,
                trial_ends_at=trial_ends_at,
            )
        )
        db.commit()
        db.refresh(clinic)
        return clinic

    @staticmethod
    def get_memberships_for_user(db: Session, user_id: int) -> list[ClinicMembership]:
        return (
            db.query(ClinicMembership)
            .options(joinedload(ClinicMembership.clinic))
            .filter(ClinicMembership.user_id == user_id)
            .order_by(ClinicMembership.created_at.asc(), ClinicMembership.id.asc())
            .all()
        )

    @staticmethod
    def update_clinic(db: Session, clinic: Clinic, **updates) -> Clinic:
        for key, value in updates.items():
            if value is not None and hasattr(clinic, key):
                setattr(clinic, key, value)
        db.commit()
        db.refresh(clinic)
        return clinic

    @staticmethod
    def get_day_counts(db: Session, clinic_id: str, day: date) -> dict:
        """Appointment counts per status bucket for one clinic day"""
        rows = (
            db.query(Appointment.status, func.count(Appointment.id))
            .filter(Appointment.clinic_id == clinic_id, Appointment.appointment_date == day)
            .group_by(Appointment.status)
            .all()
        )
        by_status = dict(rows)
        return {
            "total": sum(by_status.values()),
            "completed": by_status.get(STATUS_COMPLETED, 0),
            "no_shows": by_status.get(STATUS_NO_SHOW, 0),
            "in_queue": sum(by_status.get(s, 0) for s in QUEUE_STATUSES),
        }

    @staticmethod
    def get_revenue_between(db: Session, clinic_id: str, start: datetime, end: datetime) -> float:
        """Sum of PAID invoice totals with paid_at in [start, end)"""
        total = (
            db.query(func.sum(Invoice.total_amount))
            .filter(
                Invoice.clinic_id == clinic_id,
                Invoice.status == INVOICE_PAID,
                Invoice.paid_at >= start,
                Invoice.paid_at < end,
            )
            .scalar()
        )
        return float(total or 0)
