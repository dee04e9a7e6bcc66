"""Appointment repository - Database operations for appointments and the queue"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import QUEUE_STATUSES, Appointment, Doctor


def _with_relations(query):
    return query.options(
        joinedload(Appointment.doctor),
        joinedload(Appointment.patient),
        joinedload(Appointment.primary_service),
    )


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_appointments(
        db: Session, clinic_id: str, day: date, doctor_id: Optional[int] = None
    ) -> list[Appointment]:
        query = _with_relations(db.query(Appointment)).filter(
            Appointment.clinic_id == clinic_id, Appointment.appointment_date == day
        )
        if doctor_id is not None:
            query = query.filter(Appointment.doctor_id == doctor_id)
        return query.order_by(Appointment.start_time.asc(), Appointment.token_number.asc()).all()

    @staticmethod
    def get_appointment(db: Session, clinic_id: str, appointment_id: int) -> Optional[Appointment]:
        return (
            _with_relations(db.query(Appointment))
            .filter(Appointment.id == appointment_id, Appointment.clinic_id == clinic_id)
            .first()
        )

    @staticmethod
    def next_token_number(db: Session, clinic_id: str, doctor_id: int, day: date) -> int:
        """
        max(token_number) + 1 for the doctor's day, starting at 1.
        On PostgreSQL the doctor row is locked so concurrent bookings for the
        same doctor queue up instead of colliding; SQLite ignores the lock.
        """
        db.query(Doctor.id).filter(Doctor.id == doctor_id).with_for_update().first()
        current = (
            db.query(func.max(Appointment.token_number))
            .filter(
                Appointment.clinic_id == clinic_id,
                Appointment.doctor_id == doctor_id,
                Appointment.appointment_date == day,
            )
            .scalar()
        )
        return (current or 0) + 1

    @staticmethod
    def insert_appointment(db: Session, appointment: Appointment) -> Appointment:
        """Commit a new appointment; IntegrityError propagates on a token collision"""
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def save(db: Session, appointment: Appointment) -> Appointment:
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def delete_appointment(db: Session, appointment: Appointment) -> None:
        db.delete(appointment)
        db.commit()

    @staticmethod
    def get_queue_appointments(
        db: Session, clinic_id: str, day: date, doctor_id: Optional[int] = None
    ) -> list[Appointment]:
        """Non-terminal appointments for the day, in token order"""
        query = _with_relations(db.query(Appointment)).filter(
            Appointment.clinic_id == clinic_id,
            Appointment.appointment_date == day,
            Appointment.status.in_(QUEUE_STATUSES),
        )
        if doctor_id is not None:
            query = query.filter(Appointment.doctor_id == doctor_id)
        return query.order_by(Appointment.token_number.asc(), Appointment.id.asc()).all()
