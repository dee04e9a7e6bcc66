"""Patient repository - Database operations for patients"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, Patient

PATIENT_LIST_LIMIT = 1000


class PatientRepository:
    """Repository for patient database operations"""

    @staticmethod
    def get_patients(
        db: Session, clinic_id: str, search: Optional[str] = None, limit: int = PATIENT_LIST_LIMIT
    ) -> list[Patient]:
        query = db.query(Patient).filter(Patient.clinic_id == clinic_id)

        if search:
            search_term = f"%{search.strip().lower()}%"
            query = query.filter(
                (Patient.name.ilike(search_term)) | (Patient.phone.ilike(search_term))
            )

        return query.order_by(Patient.name.asc(), Patient.id.asc()).limit(limit).all()

    @staticmethod
    def get_patient(db: Session, clinic_id: str, patient_id: int) -> Optional[Patient]:
        return (
            db.query(Patient)
            .filter(Patient.id == patient_id, Patient.clinic_id == clinic_id)
            .first()
        )

    @staticmethod
    def create_patient(db: Session, clinic_id: str, **patient_data) -> Patient:
        patient = Patient(clinic_id=clinic_id, **patient_data)
        db.add(patient)
        db.commit()
        db.refresh(patient)
        return patient

    @staticmethod
    def update_patient(db: Session, patient: Patient, **updates) -> Patient:
        for key, value in updates.items():
            if value is not None and hasattr(patient, key):
                setattr(patient, key, value)
        db.commit()
        db.refresh(patient)
        return patient

    @staticmethod
    def get_recent_appointments(db: Session, patient_id: int, limit: int = 10) -> list[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.doctor))
            .filter(Appointment.patient_id == patient_id)
            .order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc())
            .limit(limit)
            .all()
        )
