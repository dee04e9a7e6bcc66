"""Catalog repository - Database operations for clinic services"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import ClinicService


class CatalogRepository:
    @staticmethod
    def get_services(db: Session, clinic_id: str, active_only: bool = False) -> list[ClinicService]:
        query = db.query(ClinicService).filter(ClinicService.clinic_id == clinic_id)
        if active_only:
            query = query.filter(ClinicService.is_active.is_(True))
        return query.order_by(ClinicService.name.asc()).all()

    @staticmethod
    def get_service(db: Session, clinic_id: str, service_id: int) -> Optional[ClinicService]:
        return (
            db.query(ClinicService)
            .filter(ClinicService.id == service_id, ClinicService.clinic_id == clinic_id)
            .first()
        )

    @staticmethod
    def create_service(db: Session, clinic_id: str, **service_data) -> ClinicService:
        service = ClinicService(clinic_id=clinic_id, **service_data)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def update_service(db: Session, service: ClinicService, **updates) -> ClinicService:
        for key, value in updates.items():
            if value is not None and hasattr(service, key):
                setattr(service, key, value)
        db.commit()
        db.refresh(service)
        return service
