"""Team repository - Database operations for clinic memberships"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import ClinicMembership, User


class TeamRepository:
    """Repository for membership database operations"""

    @staticmethod
    def get_members(db: Session, clinic_id: str) -> list[ClinicMembership]:
        return (
            db.query(ClinicMembership)
            .options(joinedload(ClinicMembership.user))
            .filter(ClinicMembership.clinic_id == clinic_id)
            .order_by(ClinicMembership.created_at.asc(), ClinicMembership.id.asc())
            .all()
        )

    @staticmethod
    def get_member(db: Session, clinic_id: str, member_id: int) -> Optional[ClinicMembership]:
        return (
            db.query(ClinicMembership)
            .options(joinedload(ClinicMembership.user))
            .filter(ClinicMembership.id == member_id, ClinicMembership.clinic_id == clinic_id)
            .first()
        )

    @staticmethod
    def get_membership_for_user(db: Session, clinic_id: str, user_id: int) -> Optional[ClinicMembership]:
        return (
            db.query(ClinicMembership)
            .filter(ClinicMembership.clinic_id == clinic_id, ClinicMembership.user_id == user_id)
            .first()
        )

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def get_user_by_cnic(db: Session, cnic: str) -> Optional[User]:
        return db.query(User).filter(User.cnic == cnic).first()

    @staticmethod
    def create_user(db: Session, **user_data) -> User:
        """Flushes only; the caller commits the whole invitation"""
        user = User(**user_data)
        db.add(user)
        db.flush()
        return user

    @staticmethod
    def upsert_membership(db: Session, clinic_id: str, user_id: int, role: str) -> ClinicMembership:
        membership = TeamRepository.get_membership_for_user(db, clinic_id, user_id)
        if membership:
            membership.role = role
        else:
            membership = ClinicMembership(clinic_id=clinic_id, user_id=user_id, role=role)
            db.add(membership)
        db.flush()
        return membership

    @staticmethod
    def delete_membership(db: Session, membership: ClinicMembership) -> None:
        db.delete(membership)
