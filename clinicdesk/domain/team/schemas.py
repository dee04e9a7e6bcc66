"""Team member schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import normalize_cnic, validate_email

ClinicRole = Literal["RECEPTION", "DOCTOR", "ADMIN"]


class MemberCreate(BaseModel):
    """Invite someone into the clinic. They sign in with this email."""

    email: str
    name: str
    cnic: Optional[str] = None
    role: ClinicRole = "RECEPTION"
    speciality: Optional[str] = None
    roomNumber: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        v = validate_email(v)
        if not v:
            raise ValueError("Email is required")
        return v

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("cnic")
    @classmethod
    def check_cnic(cls, v: Optional[str]) -> Optional[str]:
        return normalize_cnic(v)


class MemberUpdate(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    cnic: Optional[str] = None
    role: Optional[ClinicRole] = None
    speciality: Optional[str] = None
    roomNumber: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = validate_email(v)
        if not v:
            raise ValueError("Email cannot be blank")
        return v

    @field_validator("name")
    @classmethod
    def check_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Name cannot be blank")
        return v.strip() if v else v

    @field_validator("cnic")
    @classmethod
    def check_cnic(cls, v: Optional[str]) -> Optional[str]:
        return normalize_cnic(v)


class MemberUser(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    cnic: Optional[str] = None


class MemberDoctor(BaseModel):
    id: int
    speciality: Optional[str] = None
    roomNumber: Optional[str] = None
    isActive: bool


class MemberResponse(BaseModel):
    id: int
    role: str
    createdAt: Optional[datetime] = None
    user: MemberUser
    doctor: Optional[MemberDoctor] = None
