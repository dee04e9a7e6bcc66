"""Team router - clinic members (admin only)"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import ROLE_DOCTOR, ClinicMembership
from .schemas import MemberCreate, MemberResponse, MemberUpdate
from .service import TeamService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clinics/{clinic_id}/members", tags=["Team"])


def get_team_service(db: Session = Depends(get_db)) -> TeamService:
    """Dependency injection for TeamService"""
    return TeamService(db)


def to_member_response(
    m: ClinicMembership, service: TeamService, with_doctor: bool = False
) -> MemberResponse:
    doctor = None
    if with_doctor and m.role == ROLE_DOCTOR:
        record = service.get_doctor_record(m.clinic_id, m.user_id)
        if record:
            doctor = {
                "id": record.id,
                "speciality": record.speciality,
                "roomNumber": record.room_number,
                "isActive": record.is_active,
            }
    return MemberResponse(
        id=m.id,
        role=m.role,
        createdAt=m.created_at,
        user={
            "id": m.user.id,
            "name": m.user.full_name,
            "email": m.user.email,
            "cnic": m.user.cnic,
        },
        doctor=doctor,
    )


@router.get("", response_model=list[MemberResponse])
async def get_members(
    clinic_id: str,
    _: ClinicMembership = Depends(require_admin),
    service: TeamService = Depends(get_team_service),
):
    """Members in the order they joined"""
    return [to_member_response(m, service) for m in service.get_members(clinic_id)]


@router.post("", response_model=MemberResponse, status_code=201)
async def create_member(
    clinic_id: str,
    data: MemberCreate,
    admin: ClinicMembership = Depends(require_admin),
    service: TeamService = Depends(get_team_service),
):
    membership = await service.create_member(admin.clinic, data)
    return to_member_response(membership, service, with_doctor=True)


@router.get("/{member_id}", response_model=MemberResponse)
async def get_member(
    clinic_id: str,
    member_id: int,
    _: ClinicMembership = Depends(require_admin),
    service: TeamService = Depends(get_team_service),
):
    return to_member_response(service.get_member(clinic_id, member_id), service, with_doctor=True)


@router.patch("/{member_id}", response_model=MemberResponse)
async def update_member(
    clinic_id: str,
    member_id: int,
    data: MemberUpdate,
    _: ClinicMembership = Depends(require_admin),
    service: TeamService = Depends(get_team_service),
):
    membership = service.update_member(clinic_id, member_id, data)
    return to_member_response(membership, service, with_doctor=True)


@router.delete("/{member_id}")
async def delete_member(
    clinic_id: str,
    member_id: int,
    admin: ClinicMembership = Depends(require_admin),
    service: TeamService = Depends(get_team_service),
):
    return service.delete_member(admin.clinic, member_id, admin.user)
