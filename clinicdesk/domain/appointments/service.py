"""Appointment service - booking, token numbering and the status lifecycle"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import (
    STATUS_CHECKED_IN,
    STATUS_COMPLETED,
    STATUS_IN_CONSULTATION,
    STATUS_SCHEDULED,
    Appointment,
    Clinic,
)
from ...shared.timeutils import clinic_today, utcnow
from ...shared.validators import parse_time_of_day
from ..catalog.repository import CatalogRepository
from ..doctors.repository import DoctorRepository
from ..patients.repository import PatientRepository
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentUpdate

logger = logging.getLogger(__name__)

# Attempts at claiming a token before giving up under contention
MAX_TOKEN_ATTEMPTS = 5

TOKEN_SLIP_MESSAGE = "Please wait for your token to be called"

# Status -> timestamp column stamped the first time that status is reached
STATUS_TIMESTAMPS = {
    STATUS_CHECKED_IN: "checked_in_at",
    STATUS_IN_CONSULTATION: "consultation_started_at",
    STATUS_COMPLETED: "completed_at",
}


def combine_start_time(day: date, hhmm: str) -> datetime:
    return datetime.combine(day, parse_time_of_day(hhmm))


def apply_status(appointment: Appointment, status: str, now: Optional[datetime] = None) -> None:
    """
    Set the status without any transition check; reception staff may need
    to undo a mis-click (e.g. NO_SHOW back to CHECKED_IN).
    """
    appointment.status = status
    column = STATUS_TIMESTAMPS.get(status)
    if column and getattr(appointment, column) is None:
        setattr(appointment, column, now or utcnow())


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    def _get_clinic(self, clinic_id: str) -> Clinic:
        clinic = self.db.get(Clinic, clinic_id)
        if not clinic:
            raise HTTPException(status_code=404, detail="Clinic not found")
        return clinic

    def get_appointments(
        self, clinic_id: str, day: Optional[date] = None, doctor_id: Optional[int] = None
    ) -> list[Appointment]:
        """Appointments for a day (clinic-local today by default)"""
        if day is None:
            day = clinic_today(self._get_clinic(clinic_id).timezone)
        return self.repo.get_appointments(self.db, clinic_id, day, doctor_id)

    def get_appointment(self, clinic_id: str, appointment_id: int) -> Appointment:
        appointment = self.repo.get_appointment(self.db, clinic_id, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    def create_appointment(self, clinic_id: str, data: AppointmentCreate) -> Appointment:
        """Book an appointment and hand out the doctor's next token for that day"""
        doctor = DoctorRepository.get_doctor(self.db, clinic_id, data.doctorId)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")
        if not doctor.is_active:
            raise HTTPException(status_code=400, detail="Doctor is not active")

        if not PatientRepository.get_patient(self.db, clinic_id, data.patientId):
            raise HTTPException(status_code=404, detail="Patient not found")

        if data.primaryServiceId is not None and not CatalogRepository.get_service(
            self.db, clinic_id, data.primaryServiceId
        ):
            raise HTTPException(status_code=404, detail="Service not found")

        start_time = combine_start_time(data.date, data.startTime)

        for attempt in range(MAX_TOKEN_ATTEMPTS):
            token_number = self.repo.next_token_number(self.db, clinic_id, doctor.id, data.date)
            appointment = Appointment(
                clinic_id=clinic_id,
                doctor_id=doctor.id,
                patient_id=data.patientId,
                primary_service_id=data.primaryServiceId,
                appointment_date=data.date,
                start_time=start_time,
                token_number=token_number,
                status=STATUS_SCHEDULED,
                visit_type=data.visitType,
                notes_for_reception=data.notesForReception,
                notes_for_doctor=data.notesForDoctor,
            )
            try:
                self.repo.insert_appointment(self.db, appointment)
            except IntegrityError:
                self.db.rollback()
                logger.warning(
                    f"⚠️ Token {token_number} for doctor {doctor.id} on {data.date} taken "
                    f"concurrently (attempt {attempt + 1}/{MAX_TOKEN_ATTEMPTS})"
                )
                continue

            logger.info(
                f"🎫 Appointment {appointment.id} booked: doctor {doctor.id}, "
                f"{data.date}, token {token_number}"
            )
            return self.get_appointment(clinic_id, appointment.id)

        raise HTTPException(status_code=409, detail="Could not assign a token number, please retry")

    def update_appointment(
        self, clinic_id: str, appointment_id: int, data: AppointmentUpdate
    ) -> Appointment:
        """
        Apply a partial update. Moving to another date re-queues the
        appointment with a fresh token for the new day.
        """
        for attempt in range(MAX_TOKEN_ATTEMPTS):
            appointment = self.get_appointment(clinic_id, appointment_id)
            new_date = data.date or appointment.appointment_date
            moving = new_date != appointment.appointment_date

            if data.status is not None:
                apply_status(appointment, data.status)
            if data.notesForReception is not None:
                appointment.notes_for_reception = data.notesForReception
            if data.notesForDoctor is not None:
                appointment.notes_for_doctor = data.notesForDoctor

            if data.startTime is not None:
                appointment.start_time = combine_start_time(new_date, data.startTime)
            elif moving:
                appointment.start_time = datetime.combine(new_date, appointment.start_time.time())

            if moving:
                appointment.token_number = self.repo.next_token_number(
                    self.db, clinic_id, appointment.doctor_id, new_date
                )
                appointment.appointment_date = new_date

            try:
                return self.repo.save(self.db, appointment)
            except IntegrityError:
                self.db.rollback()
                logger.warning(
                    f"⚠️ Token collision moving appointment {appointment_id} to {new_date} "
                    f"(attempt {attempt + 1}/{MAX_TOKEN_ATTEMPTS})"
                )

        raise HTTPException(status_code=409, detail="Could not assign a token number, please retry")

    def set_status(self, clinic_id: str, appointment_id: int, status: str) -> Appointment:
        appointment = self.get_appointment(clinic_id, appointment_id)
        previous = appointment.status
        apply_status(appointment, status)
        appointment = self.repo.save(self.db, appointment)
        logger.info(f"🔁 Appointment {appointment_id} {previous} -> {status}")
        return appointment

    def delete_appointment(self, clinic_id: str, appointment_id: int) -> dict:
        appointment = self.get_appointment(clinic_id, appointment_id)
        self.repo.delete_appointment(self.db, appointment)
        logger.info(f"🗑️ Appointment {appointment_id} deleted from clinic {clinic_id}")
        return {"success": True}

    def get_token_slip(self, clinic_id: str, appointment_id: int) -> dict:
        appointment = self.get_appointment(clinic_id, appointment_id)
        clinic = self._get_clinic(clinic_id)
        return {
            "appointmentId": appointment.id,
            "clinicName": clinic.name,
            "tokenNumber": appointment.token_number,
            "doctorName": appointment.doctor.name,
            "doctorSpeciality": appointment.doctor.speciality,
            "roomNumber": appointment.doctor.room_number,
            "patientName": appointment.patient.name,
            "serviceName": (
                appointment.primary_service.name if appointment.primary_service else None
            ),
            "date": appointment.appointment_date.strftime("%d %b %Y"),
            "time": appointment.start_time.strftime("%H:%M"),
            "message": TOKEN_SLIP_MESSAGE,
        }
