"""Doctor service - roster management within plan limits"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Doctor
from ...plan_limits import can_add_doctor
from .repository import DoctorRepository
from .schemas import DoctorCreate, DoctorUpdate

logger = logging.getLogger(__name__)


class DoctorService:
    """Service layer for doctor business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DoctorRepository()

    def _ensure_capacity(self, clinic_id: str, exclude_doctor_id: int = None) -> None:
        can_add, error_message = can_add_doctor(clinic_id, self.db, exclude_doctor_id)
        if not can_add:
            logger.warning(f"⚠️ Clinic {clinic_id} reached doctor limit")
            raise HTTPException(status_code=403, detail=error_message)

    def get_doctors(self, clinic_id: str, active_only: bool = False) -> list[Doctor]:
        return self.repo.get_doctors(self.db, clinic_id, active_only)

    def get_doctor(self, clinic_id: str, doctor_id: int) -> Doctor:
        doctor = self.repo.get_doctor(self.db, clinic_id, doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")
        return doctor

    def create_doctor(self, clinic_id: str, data: DoctorCreate) -> Doctor:
        if data.isActive:
            self._ensure_capacity(clinic_id)

        doctor = self.repo.create_doctor(
            self.db,
            clinic_id,
            name=data.name,
            speciality=data.speciality,
            room_number=data.roomNumber,
            is_active=data.isActive,
        )
        logger.info(f"🩺 Doctor {doctor.id} added to clinic {clinic_id}")
        return doctor

    def update_doctor(self, clinic_id: str, doctor_id: int, data: DoctorUpdate) -> Doctor:
        doctor = self.get_doctor(clinic_id, doctor_id)

        # Reactivating counts against the plan like a new doctor
        if data.isActive and not doctor.is_active:
            self._ensure_capacity(clinic_id, exclude_doctor_id=doctor.id)

        return self.repo.update_doctor(
            self.db,
            doctor,
            name=data.name,
            speciality=data.speciality,
            room_number=data.roomNumber,
            is_active=data.isActive,
        )
