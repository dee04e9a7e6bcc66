"""Clinic router - registration, clinic switcher, settings and dashboard"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_clinic_membership, get_current_user, require_admin
from ...database import get_db
from ...models import Clinic, ClinicMembership, User
from ...rate_limiter import rate_limit_clinic_registration
from .schemas import (
    ClinicCreate,
    ClinicResponse,
    ClinicUpdate,
    DashboardResponse,
    MyClinicResponse,
)
from .service import ClinicService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clinics", tags=["Clinics"])


def get_clinic_service(db: Session = Depends(get_db)) -> ClinicService:
    """Dependency injection for ClinicService"""
    return ClinicService(db)


def _clinic_response(clinic: Clinic, role: str = None) -> ClinicResponse:
    return ClinicResponse(
        id=clinic.id,
        name=clinic.name,
        slug=clinic.slug,
        timezone=clinic.timezone,
        phone=clinic.phone,
        address=clinic.address,
        role=role,
        createdAt=clinic.created_at,
    )


@router.post("", response_model=ClinicResponse, status_code=201)
async def register_clinic(
    data: ClinicCreate,
    current_user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_clinic_service),
    _: None = Depends(rate_limit_clinic_registration),
):
    """Register a clinic; the caller becomes its ADMIN and a trial starts"""
    clinic = service.register_clinic(data, current_user)
    return _clinic_response(clinic, role="ADMIN")


@router.get("", response_model=list[MyClinicResponse])
async def get_my_clinics(
    current_user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_clinic_service),
):
    """Clinics the current user belongs to"""
    return [
        MyClinicResponse(
            clinicId=m.clinic_id,
            clinicName=m.clinic.name,
            slug=m.clinic.slug,
            role=m.role,
        )
        for m in service.get_my_clinics(current_user)
    ]


@router.get("/{clinic_id}", response_model=ClinicResponse)
async def get_clinic(
    clinic_id: str,
    membership: ClinicMembership = Depends(get_clinic_membership),
    service: ClinicService = Depends(get_clinic_service),
):
    clinic = service.get_clinic(clinic_id)
    return _clinic_response(clinic, role=membership.role)


@router.patch("/{clinic_id}", response_model=ClinicResponse)
async def update_clinic(
    clinic_id: str,
    data: ClinicUpdate,
    membership: ClinicMembership = Depends(require_admin),
    service: ClinicService = Depends(get_clinic_service),
):
    """Update clinic settings (admin only)"""
    clinic = service.update_clinic(clinic_id, data)
    return _clinic_response(clinic, role=membership.role)


@router.get("/{clinic_id}/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    clinic_id: str,
    _: ClinicMembership = Depends(get_clinic_membership),
    service: ClinicService = Depends(get_clinic_service),
):
    """Today's appointment and revenue numbers"""
    return service.get_dashboard(clinic_id)
