"""Team service - inviting, editing and removing clinic members"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...email_service import send_best_effort, send_member_invitation_email
from ...models import ROLE_DOCTOR, Clinic, ClinicMembership, Doctor, User
from ...plan_limits import can_add_doctor
from ..doctors.repository import DoctorRepository
from .repository import TeamRepository
from .schemas import MemberCreate, MemberUpdate

logger = logging.getLogger(__name__)


class TeamService:
    """Service layer for membership business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TeamRepository()

    def get_members(self, clinic_id: str) -> list[ClinicMembership]:
        return self.repo.get_members(self.db, clinic_id)

    def get_member(self, clinic_id: str, member_id: int) -> ClinicMembership:
        membership = self.repo.get_member(self.db, clinic_id, member_id)
        if not membership:
            raise HTTPException(status_code=404, detail="Member not found")
        return membership

    def get_doctor_record(self, clinic_id: str, user_id: int) -> Optional[Doctor]:
        doctors = DoctorRepository.get_doctors_for_user(self.db, clinic_id, user_id)
        return doctors[0] if doctors else None

    def _ensure_doctor_capacity(self, clinic_id: str, existing: Optional[Doctor]) -> None:
        if existing is not None and existing.is_active:
            return
        can_add, error_message = can_add_doctor(clinic_id, self.db)
        if not can_add:
            raise HTTPException(status_code=403, detail=error_message)

    def _upsert_doctor(
        self,
        clinic_id: str,
        user_id: int,
        name: str,
        speciality: Optional[str],
        room_number: Optional[str],
    ) -> Doctor:
        """Active doctor record linked to the member; flushed, not committed"""
        doctor = self.get_doctor_record(clinic_id, user_id)
        self._ensure_doctor_capacity(clinic_id, doctor)
        if doctor:
            return DoctorRepository.update_doctor(
                self.db,
                doctor,
                commit=False,
                name=name,
                speciality=speciality,
                room_number=room_number,
                is_active=True,
            )
        return DoctorRepository.create_doctor(
            self.db,
            clinic_id,
            commit=False,
            user_id=user_id,
            name=name,
            speciality=speciality,
            room_number=room_number,
            is_active=True,
        )

    def _check_identity_free(
        self, email: Optional[str], cnic: Optional[str], user_id: Optional[int] = None
    ) -> None:
        """400 when another user already holds this email or CNIC"""
        if email:
            existing = self.repo.get_user_by_email(self.db, email)
            if existing and existing.id != user_id:
                raise HTTPException(status_code=400, detail="Email is already taken by another user.")
        if cnic:
            existing = self.repo.get_user_by_cnic(self.db, cnic)
            if existing and existing.id != user_id:
                raise HTTPException(status_code=400, detail="CNIC is already taken by another user.")

    async def create_member(self, clinic: Clinic, data: MemberCreate) -> ClinicMembership:
        """
        Create the user, give them a seat in the clinic and, for doctors,
        a doctor record. They link to Firebase the first time they sign in.
        """
        self._check_identity_free(data.email, data.cnic)

        try:
            user = self.repo.create_user(
                self.db, email=data.email, full_name=data.name, cnic=data.cnic
            )
            membership = self.repo.upsert_membership(self.db, clinic.id, user.id, data.role)
            if data.role == ROLE_DOCTOR:
                self._upsert_doctor(clinic.id, user.id, data.name, data.speciality, data.roomNumber)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Member create race for {data.email}: {e}")
            raise HTTPException(
                status_code=400, detail="User with this email or CNIC already exists."
            ) from e
        except HTTPException:
            self.db.rollback()
            raise

        logger.info(f"👥 User {user.id} added to clinic {clinic.id} as {data.role}")

        await send_best_effort(
            send_member_invitation_email(data.email, data.name, clinic.name, data.role),
            f"invitation email to {data.email}",
        )
        return self.get_member(clinic.id, membership.id)

    def update_member(self, clinic_id: str, member_id: int, data: MemberUpdate) -> ClinicMembership:
        membership = self.get_member(clinic_id, member_id)
        user: User = membership.user
        old_role = membership.role
        new_role = data.role or old_role

        self._check_identity_free(data.email, data.cnic, user_id=user.id)

        try:
            if data.name is not None:
                user.full_name = data.name
            if data.email is not None:
                user.email = data.email
            if data.cnic is not None:
                user.cnic = data.cnic
            membership.role = new_role

            if new_role == ROLE_DOCTOR:
                existing = self.get_doctor_record(clinic_id, user.id)
                self._upsert_doctor(
                    clinic_id,
                    user.id,
                    data.name or user.full_name or user.email,
                    data.speciality if data.speciality is not None else getattr(existing, "speciality", None),
                    data.roomNumber if data.roomNumber is not None else getattr(existing, "room_number", None),
                )
            elif old_role == ROLE_DOCTOR:
                # No longer seeing patients; keep the record for past appointments
                for doctor in DoctorRepository.get_doctors_for_user(self.db, clinic_id, user.id):
                    doctor.is_active = False

            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(
                status_code=400, detail="Email or CNIC is already taken by another user."
            ) from e
        except HTTPException:
            self.db.rollback()
            raise

        logger.info(f"👥 Member {member_id} of clinic {clinic_id} updated ({old_role} -> {new_role})")
        return self.get_member(clinic_id, member_id)

    def delete_member(self, clinic: Clinic, member_id: int, current_user: User) -> dict:
        membership = self.get_member(clinic.id, member_id)

        if membership.user_id == current_user.id:
            raise HTTPException(status_code=400, detail="You cannot delete your own account")
        if clinic.owner_id == membership.user_id:
            raise HTTPException(status_code=400, detail="Cannot delete the clinic owner")

        for doctor in DoctorRepository.get_doctors_for_user(self.db, clinic.id, membership.user_id):
            if DoctorRepository.has_appointments(self.db, doctor.id):
                doctor.is_active = False
                doctor.user_id = None
            else:
                self.db.delete(doctor)

        # The user account stays; it may belong to other clinics
        self.repo.delete_membership(self.db, membership)
        self.db.commit()

        logger.info(f"👋 Member {member_id} removed from clinic {clinic.id}")
        return {"message": "Member removed successfully"}
