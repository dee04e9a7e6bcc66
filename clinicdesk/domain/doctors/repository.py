"""Doctor repository - Database operations for doctors"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Appointment, Doctor


class DoctorRepository:
    """Repository for doctor database operations"""

    @staticmethod
    def get_doctors(db: Session, clinic_id: str, active_only: bool = False) -> list[Doctor]:
        query = db.query(Doctor).filter(Doctor.clinic_id == clinic_id)
        if active_only:
            query = query.filter(Doctor.is_active.is_(True))
        return query.order_by(Doctor.name.asc(), Doctor.id.asc()).all()

    @staticmethod
    def get_doctor(db: Session, clinic_id: str, doctor_id: int) -> Optional[Doctor]:
        return (
            db.query(Doctor).filter(Doctor.id == doctor_id, Doctor.clinic_id == clinic_id).first()
        )

    @staticmethod
    def get_doctors_for_user(db: Session, clinic_id: str, user_id: int) -> list[Doctor]:
        return (
            db.query(Doctor)
            .filter(Doctor.clinic_id == clinic_id, Doctor.user_id == user_id)
            .order_by(Doctor.id.asc())
            .all()
        )

    @staticmethod
    def create_doctor(db: Session, clinic_id: str, commit: bool = True, **doctor_data) -> Doctor:
        doctor = Doctor(clinic_id=clinic_id, **doctor_data)
        db.add(doctor)
        if commit:
            db.commit()
            db.refresh(doctor)
        else:
            db.flush()
        return doctor

    @staticmethod
    def update_doctor(db: Session, doctor: Doctor, commit: bool = True, **updates) -> Doctor:
        for key, value in updates.items():
            if value is not None and hasattr(doctor, key):
                setattr(doctor, key, value)
        if commit:
            db.commit()
            db.refresh(doctor)
        return doctor

    @staticmethod
    def has_appointments(db: Session, doctor_id: int) -> bool:
        return (
            db.query(Appointment.id).filter(Appointment.doctor_id == doctor_id).first() is not None
        )
