"""Patient service"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Appointment, Patient
from .repository import PatientRepository
from .schemas import PatientCreate, PatientUpdate

logger = logging.getLogger(__name__)


class PatientService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = PatientRepository()

    def get_patients(self, clinic_id: str, search: Optional[str] = None) -> list[Patient]:
        return self.repo.get_patients(self.db, clinic_id, search)

    def get_patient(self, clinic_id: str, patient_id: int) -> Patient:
        patient = self.repo.get_patient(self.db, clinic_id, patient_id)
        if not patient:
            raise HTTPException(status_code=404, detail="Patient not found")
        return patient

    def get_patient_history(self, patient: Patient) -> list[Appointment]:
        return self.repo.get_recent_appointments(self.db, patient.id)

    def create_patient(self, clinic_id: str, data: PatientCreate) -> Patient:
        patient = self.repo.create_patient(
            self.db,
            clinic_id,
            name=data.name,
            phone=data.phone,
            email=data.email,
            gender=data.gender,
            date_of_birth=data.dateOfBirth,
            address=data.address,
            notes=data.notes,
        )
        logger.info(f"🧾 Patient {patient.id} registered in clinic {clinic_id}")
        return patient

    def update_patient(self, clinic_id: str, patient_id: int, data: PatientUpdate) -> Patient:
        patient = self.get_patient(clinic_id, patient_id)
        if data.name is not None and not data.name.strip():
            raise HTTPException(status_code=400, detail="Patient name cannot be empty")

        return self.repo.update_patient(
            self.db,
            patient,
            name=data.name.strip() if data.name else None,
            phone=data.phone,
            email=data.email,
            gender=data.gender,
            date_of_birth=data.dateOfBirth,
            address=data.address,
            notes=data.notes,
        )
