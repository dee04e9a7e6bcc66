"""Reports repository - cross-clinic queries for scheduled jobs"""

from datetime import date

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import STATUS_SCHEDULED, Appointment, Clinic


class ReportRepository:
    """Queries that span every clinic; only background jobs use these"""

    @staticmethod
    def get_scheduled_appointments_on(db: Session, day: date) -> list[Appointment]:
        return (
            db.query(Appointment)
            .options(
                joinedload(Appointment.clinic).joinedload(Clinic.subscription),
                joinedload(Appointment.doctor),
                joinedload(Appointment.patient),
            )
            .filter(Appointment.appointment_date == day, Appointment.status == STATUS_SCHEDULED)
            .order_by(Appointment.clinic_id.asc(), Appointment.start_time.asc())
            .all()
        )

    @staticmethod
    def get_clinics(db: Session) -> list[Clinic]:
        return (
            db.query(Clinic)
            .options(joinedload(Clinic.subscription), joinedload(Clinic.owner))
            .order_by(Clinic.created_at.asc(), Clinic.id.asc())
            .all()
        )

    @staticmethod
    def count_appointments_on(db: Session, clinic_id: str, day: date) -> int:
        return (
            db.query(func.count(Appointment.id))
            .filter(Appointment.clinic_id == clinic_id, Appointment.appointment_date == day)
            .scalar()
            or 0
        )
