"""Catalog service"""

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ClinicService
from .repository import CatalogRepository
from .schemas import ServiceCreate, ServiceUpdate


class CatalogService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = CatalogRepository()

    def get_services(self, clinic_id: str, active_only: bool = False) -> list[ClinicService]:
        return self.repo.get_services(self.db, clinic_id, active_only)

    def get_service(self, clinic_id: str, service_id: int) -> ClinicService:
        service = self.repo.get_service(self.db, clinic_id, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        return service

    def create_service(self, clinic_id: str, data: ServiceCreate) -> ClinicService:
        return self.repo.create_service(
            self.db, clinic_id, name=data.name, price=data.price, is_active=data.isActive
        )

    def update_service(self, clinic_id: str, service_id: int, data: ServiceUpdate) -> ClinicService:
        service = self.get_service(clinic_id, service_id)
        if data.name is not None and not data.name.strip():
            raise HTTPException(status_code=400, detail="Service name cannot be empty")
        return self.repo.update_service(
            self.db,
            service,
            name=data.name.strip() if data.name else None,
            price=data.price,
            is_active=data.isActive,
        )
