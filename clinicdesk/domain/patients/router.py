"""Patient router - FastAPI endpoints for patient records"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_clinic_membership
from ...database import get_db
from ...models import ClinicMembership, Patient
from .schemas import (
    PatientCreate,
    PatientDetailResponse,
    PatientResponse,
    PatientUpdate,
    PatientVisit,
)
from .service import PatientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clinics/{clinic_id}/patients", tags=["Patients"])


def get_patient_service(db: Session = Depends(get_db)) -> PatientService:
    """Dependency injection for PatientService"""
    return PatientService(db)


def _patient_fields(p: Patient) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "phone": p.phone,
        "email": p.email,
        "gender": p.gender,
        "dateOfBirth": p.date_of_birth,
        "address": p.address,
        "notes": p.notes,
        "createdAt": p.created_at,
    }


@router.get("", response_model=list[PatientResponse])
async def get_patients(
    clinic_id: str,
    search: Optional[str] = Query(None, description="Match on name or phone"),
    _: ClinicMembership = Depends(get_clinic_membership),
    service: PatientService = Depends(get_patient_service),
):
    """Patients ordered by name (first 1000)"""
    return [PatientResponse(**_patient_fields(p)) for p in service.get_patients(clinic_id, search)]


@router.post("", response_model=PatientResponse, status_code=201)
async def create_patient(
    clinic_id: str,
    data: PatientCreate,
    _: ClinicMembership = Depends(get_clinic_membership),
    service: PatientService = Depends(get_patient_service),
):
    patient = service.create_patient(clinic_id, data)
    return PatientResponse(**_patient_fields(patient))


@router.get("/{patient_id}", response_model=PatientDetailResponse)
async def get_patient(
    clinic_id: str,
    patient_id: int,
    _: ClinicMembership = Depends(get_clinic_membership),
    service: PatientService = Depends(get_patient_service),
):
    """Patient record with their most recent visits"""
    patient = service.get_patient(clinic_id, patient_id)
    visits = [
        PatientVisit(
            appointmentId=a.id,
            date=a.appointment_date,
            startTime=a.start_time,
            tokenNumber=a.token_number,
            status=a.status,
            doctorName=a.doctor.name,
        )
        for a in service.get_patient_history(patient)
    ]
    return PatientDetailResponse(**_patient_fields(patient), recentAppointments=visits)


@router.patch("/{patient_id}", response_model=PatientResponse)
async def update_patient(
    clinic_id: str,
    patient_id: int,
    data: PatientUpdate,
    _: ClinicMembership = Depends(get_clinic_membership),
    service: PatientService = Depends(get_patient_service),
):
    patient = service.update_patient(clinic_id, patient_id, data)
    return PatientResponse(**_patient_fields(patient))
