"""Catalog router - the clinic's billable services"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_clinic_membership, require_admin
from ...database import get_db
from ...models import ClinicMembership, ClinicService
from .schemas import ServiceCreate, ServiceResponse, ServiceUpdate
from .service import CatalogService

router = APIRouter(prefix="/clinics/{clinic_id}/services", tags=["Services"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


def _to_response(s: ClinicService) -> ServiceResponse:
    return ServiceResponse(id=s.id, name=s.name, price=s.price, isActive=s.is_active)


@router.get("", response_model=list[ServiceResponse])
async def get_services(
    clinic_id: str,
    active_only: bool = Query(False, alias="activeOnly"),
    _: ClinicMembership = Depends(get_clinic_membership),
    service: CatalogService = Depends(get_catalog_service),
):
    return [_to_response(s) for s in service.get_services(clinic_id, active_only)]


@router.post("", response_model=ServiceResponse, status_code=201)
async def create_service(
    clinic_id: str,
    data: ServiceCreate,
    _: ClinicMembership = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return _to_response(service.create_service(clinic_id, data))


@router.patch("/{service_id}", response_model=ServiceResponse)
async def update_service(
    clinic_id: str,
    service_id: int,
    data: ServiceUpdate,
    _: ClinicMembership = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return _to_response(service.update_service(clinic_id, service_id, data))
