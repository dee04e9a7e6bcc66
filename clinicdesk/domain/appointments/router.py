"""Appointment and queue routers"""

import logging
from datetime import date as Date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_clinic_membership, require_active_subscription
from ...database import get_db
from ...models import Appointment, ClinicMembership
from .queue_service import QueueService, to_queue_entry
from .schemas import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentUpdate,
    QueueEntry,
    QueueResponse,
    StatusUpdate,
    TokenSlipResponse,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clinics/{clinic_id}/appointments", tags=["Appointments"])
queue_router = APIRouter(prefix="/clinics/{clinic_id}/queue", tags=["Queue"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


def get_queue_service(db: Session = Depends(get_db)) -> QueueService:
    return QueueService(db)


def to_appointment_response(a: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=a.id,
        date=a.appointment_date,
        startTime=a.start_time,
        tokenNumber=a.token_number,
        status=a.status,
        visitType=a.visit_type,
        notesForReception=a.notes_for_reception,
        notesForDoctor=a.notes_for_doctor,
        checkedInAt=a.checked_in_at,
        consultationStartedAt=a.consultation_started_at,
        completedAt=a.completed_at,
        doctor={
            "id": a.doctor.id,
            "name": a.doctor.name,
            "speciality": a.doctor.speciality,
            "roomNumber": a.doctor.room_number,
        },
        patient={"id": a.patient.id, "name": a.patient.name, "phone": a.patient.phone},
        primaryService=(
            {"id": a.primary_service.id, "name": a.primary_service.name}
            if a.primary_service
            else None
        ),
    )


@router.get("", response_model=list[AppointmentResponse])
async def get_appointments(
    clinic_id: str,
    day: Optional[Date] = Query(None, alias="date"),
    doctor_id: Optional[int] = Query(None, alias="doctorId"),
    _: ClinicMembership = Depends(get_clinic_membership),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Appointments for one day, clinic-local today when no date is given"""
    return [to_appointment_response(a) for a in service.get_appointments(clinic_id, day, doctor_id)]


@router.post("", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    clinic_id: str,
    data: AppointmentCreate,
    _: ClinicMembership = Depends(require_active_subscription),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book an appointment; the response carries the assigned token number"""
    return to_appointment_response(service.create_appointment(clinic_id, data))


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    clinic_id: str,
    appointment_id: int,
    data: AppointmentUpdate,
    _: ClinicMembership = Depends(get_clinic_membership),
    service: AppointmentService = Depends(get_appointment_service),
):
    return to_appointment_response(service.update_appointment(clinic_id, appointment_id, data))


@router.delete("/{appointment_id}")
async def delete_appointment(
    clinic_id: str,
    appointment_id: int,
    _: ClinicMembership = Depends(get_clinic_membership),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.delete_appointment(clinic_id, appointment_id)


@router.get("/{appointment_id}/token", response_model=TokenSlipResponse)
async def get_token_slip(
    clinic_id: str,
    appointment_id: int,
    _: ClinicMembership = Depends(get_clinic_membership),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Data for the printed token slip"""
    return service.get_token_slip(clinic_id, appointment_id)


@queue_router.get("", response_model=QueueResponse)
async def get_queue(
    clinic_id: str,
    doctor_id: Optional[int] = Query(None, alias="doctorId"),
    _: ClinicMembership = Depends(get_clinic_membership),
    service: QueueService = Depends(get_queue_service),
):
    """Today's queue; clients poll this every pollIntervalSeconds"""
    return service.get_queue(clinic_id, doctor_id)


@queue_router.post("/{appointment_id}/status", response_model=QueueEntry)
async def update_queue_status(
    clinic_id: str,
    appointment_id: int,
    data: StatusUpdate,
    _: ClinicMembership = Depends(get_clinic_membership),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Check in, call in or finish a patient from the queue screen"""
    return to_queue_entry(service.set_status(clinic_id, appointment_id, data.status))
