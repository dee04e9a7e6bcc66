"""Queue service - today's live queue grouped by doctor"""

from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import QUEUE_POLL_INTERVAL_SECONDS
from ...models import (
    STATUS_CHECKED_IN,
    STATUS_IN_CONSULTATION,
    STATUS_SCHEDULED,
    Appointment,
    Clinic,
)
from ...shared.timeutils import clinic_today, utcnow
from ..doctors.repository import DoctorRepository
from .repository import AppointmentRepository


def to_queue_entry(appointment: Appointment) -> dict:
    return {
        "appointmentId": appointment.id,
        "tokenNumber": appointment.token_number,
        "status": appointment.status,
        "startTime": appointment.start_time,
        "visitType": appointment.visit_type,
        "patientName": appointment.patient.name,
        "patientPhone": appointment.patient.phone,
        "serviceName": appointment.primary_service.name if appointment.primary_service else None,
        "checkedInAt": appointment.checked_in_at,
    }


def group_by_doctor(appointments: list[Appointment]) -> list[dict]:
    """
    One group per doctor with queued appointments, ordered by doctor name.
    Input must already be in token order.
    """
    groups: dict[int, dict] = {}
    for appt in appointments:
        group = groups.get(appt.doctor_id)
        if group is None:
            group = groups[appt.doctor_id] = {
                "doctor": {
                    "id": appt.doctor.id,
                    "name": appt.doctor.name,
                    "speciality": appt.doctor.speciality,
                    "roomNumber": appt.doctor.room_number,
                },
                "nowServing": None,
                "inConsultation": [],
                "checkedIn": [],
                "scheduled": [],
                "waitingCount": 0,
            }

        entry = to_queue_entry(appt)
        if appt.status == STATUS_IN_CONSULTATION:
            group["inConsultation"].append(entry)
            if group["nowServing"] is None:
                group["nowServing"] = entry
        elif appt.status == STATUS_CHECKED_IN:
            group["checkedIn"].append(entry)
        elif appt.status == STATUS_SCHEDULED:
            group["scheduled"].append(entry)

    for group in groups.values():
        group["waitingCount"] = len(group["checkedIn"]) + len(group["scheduled"])

    return sorted(groups.values(), key=lambda g: (g["doctor"]["name"].lower(), g["doctor"]["id"]))


class QueueService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    def get_queue(self, clinic_id: str, doctor_id: Optional[int] = None) -> dict:
        clinic = self.db.get(Clinic, clinic_id)
        if not clinic:
            raise HTTPException(status_code=404, detail="Clinic not found")

        today = clinic_today(clinic.timezone)
        appointments = self.repo.get_queue_appointments(self.db, clinic_id, today, doctor_id)
        doctors = DoctorRepository.get_doctors(self.db, clinic_id, active_only=True)

        return {
            "date": today,
            "generatedAt": utcnow(),
            "pollIntervalSeconds": QUEUE_POLL_INTERVAL_SECONDS,
            "doctors": [{"id": d.id, "name": d.name} for d in doctors],
            "groups": group_by_doctor(appointments),
        }
