"""Clinic service - Registration, settings and the daily dashboard"""

import logging
from datetime import timedelta

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import TRIAL_DAYS
from ...models import Clinic, ClinicMembership, User
from ...shared.timeutils import clinic_today, local_day_bounds_utc, utcnow
from ...shared.validators import generate_slug
from .repository import ClinicRepository
from .schemas import ClinicCreate, ClinicUpdate

logger = logging.getLogger(__name__)

MAX_SLUG_ATTEMPTS = 5


class ClinicService:
    """Service layer for clinic business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClinicRepository()

    def unique_slug(self, name: str) -> str:
        """base, base-1, base-2, ... first one not taken"""
        base = generate_slug(name)
        taken = self.repo.slugs_with_prefix(self.db, base)
        if base not in taken:
            return base
        counter = 1
        while f"{base}-{counter}" in taken:
            counter += 1
        return f"{base}-{counter}"

    def register_clinic(self, data: ClinicCreate, user: User) -> Clinic:
        """Create a clinic owned by user, with an ADMIN seat and a trial subscription"""
        trial_ends_at = utcnow() + timedelta(days=TRIAL_DAYS)

        for attempt in range(MAX_SLUG_ATTEMPTS):
            slug = self.unique_slug(data.name)
            try:
                clinic = self.repo.create_clinic_with_owner(
                    self.db,
                    owner_id=user.id,
                    name=data.name,
                    slug=slug,
                    timezone=data.timezone,
                    trial_ends_at=trial_ends_at,
                    phone=data.phone,
                    address=data.address,
                )
            except IntegrityError:
                # Another registration claimed the slug first
                self.db.rollback()
                logger.warning(f"⚠️ Slug {slug} taken concurrently (attempt {attempt + 1})")
                continue
            logger.info(f"🏥 Clinic {clinic.id} ({slug}) registered by user {user.id}")
            return clinic

        raise HTTPException(status_code=409, detail="Could not reserve a clinic URL, please retry")

    def get_my_clinics(self, user: User) -> list[ClinicMembership]:
        return self.repo.get_memberships_for_user(self.db, user.id)

    def get_clinic(self, clinic_id: str) -> Clinic:
        clinic = self.repo.get_clinic(self.db, clinic_id)
        if not clinic:
            raise HTTPException(status_code=404, detail="Clinic not found")
        return clinic

    def update_clinic(self, clinic_id: str, data: ClinicUpdate) -> Clinic:
        clinic = self.get_clinic(clinic_id)
        return self.repo.update_clinic(
            self.db,
            clinic,
            name=data.name,
            timezone=data.timezone,
            phone=data.phone,
            address=data.address,
        )

    def get_dashboard(self, clinic_id: str) -> dict:
        """Today's numbers in the clinic's own time zone"""
        clinic = self.get_clinic(clinic_id)
        today = clinic_today(clinic.timezone)
        counts = self.repo.get_day_counts(self.db, clinic_id, today)
        start, end = local_day_bounds_utc(clinic.timezone, today)
        revenue = self.repo.get_revenue_between(self.db, clinic_id, start, end)
        return {
            "date": today,
            "totalAppointments": counts["total"],
            "completed": counts["completed"],
            "noShows": counts["no_shows"],
            "inQueue": counts["in_queue"],
            "revenue": revenue,
        }
