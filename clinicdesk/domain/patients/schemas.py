"""Patient domain schemas - Pydantic models for validation"""

from datetime import date as Date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email, validate_phone


class PatientCreate(BaseModel):
    """Schema for registering a patient at the front desk"""

    name: str
    phone: str
    email: Optional[str] = None
    gender: Optional[str] = None
    dateOfBirth: Optional[Date] = None
    address: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Patient name is required")
        return v

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Phone number is required")
        return validate_phone(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        # The intake form posts "" when the field is left blank
        if not v or not v.strip():
            return None
        return validate_email(v)


class PatientUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    gender: Optional[str] = None
    dateOfBirth: Optional[Date] = None
    address: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        if v:
            return validate_phone(v)
        return v

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        if v:
            return validate_email(v)
        return v


class PatientResponse(BaseModel):
    id: int
    name: str
    phone: str
    email: Optional[str] = None
    gender: Optional[str] = None
    dateOfBirth: Optional[Date] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    createdAt: Optional[datetime] = None


class PatientVisit(BaseModel):
    appointmentId: int
    date: Date
    startTime: datetime
    tokenNumber: int
    status: str
    doctorName: str


class PatientDetailResponse(PatientResponse):
    recentAppointments: list[PatientVisit] = []
