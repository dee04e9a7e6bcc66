"""Doctor router - FastAPI endpoints for the clinic's doctor roster"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_clinic_membership, require_admin
from ...database import get_db
from ...models import ClinicMembership, Doctor
from .schemas import DoctorCreate, DoctorResponse, DoctorUpdate
from .service import DoctorService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clinics/{clinic_id}/doctors", tags=["Doctors"])


def get_doctor_service(db: Session = Depends(get_db)) -> DoctorService:
    """Dependency injection for DoctorService"""
    return DoctorService(db)


def to_doctor_response(doctor: Doctor) -> DoctorResponse:
    return DoctorResponse(
        id=doctor.id,
        name=doctor.name,
        speciality=doctor.speciality,
        roomNumber=doctor.room_number,
        isActive=doctor.is_active,
        userId=doctor.user_id,
    )


@router.get("", response_model=list[DoctorResponse])
async def get_doctors(
    clinic_id: str,
    active_only: bool = Query(False, alias="activeOnly"),
    _: ClinicMembership = Depends(get_clinic_membership),
    service: DoctorService = Depends(get_doctor_service),
):
    """Doctors ordered by name"""
    return [to_doctor_response(d) for d in service.get_doctors(clinic_id, active_only)]


@router.post("", response_model=DoctorResponse, status_code=201)
async def create_doctor(
    clinic_id: str,
    data: DoctorCreate,
    _: ClinicMembership = Depends(require_admin),
    service: DoctorService = Depends(get_doctor_service),
):
    """Add a doctor (admin only, subject to plan limit)"""
    return to_doctor_response(service.create_doctor(clinic_id, data))


@router.patch("/{doctor_id}", response_model=DoctorResponse)
async def update_doctor(
    clinic_id: str,
    doctor_id: int,
    data: DoctorUpdate,
    _: ClinicMembership = Depends(require_admin),
    service: DoctorService = Depends(get_doctor_service),
):
    return to_doctor_response(service.update_doctor(clinic_id, doctor_id, data))
