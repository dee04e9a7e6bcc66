"""Clinic domain schemas - Pydantic models for validation"""

from datetime import date as Date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_phone, validate_timezone


class ClinicCreate(BaseModel):
    """Schema for registering a new clinic"""

    name: str
    timezone: str = "UTC"
    phone: Optional[str] = None
    address: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Clinic name must be at least 2 characters")
        return v

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v):
        return validate_timezone(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        if v:
            return validate_phone(v)
        return None


class ClinicUpdate(BaseModel):
    """Schema for updating clinic settings"""

    name: Optional[str] = None
    timezone: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None and len(v.strip()) < 2:
            raise ValueError("Clinic name must be at least 2 characters")
        return v.strip() if v else v

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v):
        return validate_timezone(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        if v:
            return validate_phone(v)
        return v


class ClinicResponse(BaseModel):
    id: str
    name: str
    slug: str
    timezone: str
    phone: Optional[str] = None
    address: Optional[str] = None
    role: Optional[str] = None
    createdAt: Optional[datetime] = None


class MyClinicResponse(BaseModel):
    """One entry of the clinic switcher"""

    clinicId: str
    clinicName: str
    slug: str
    role: str


class DashboardResponse(BaseModel):
    date: Date
    totalAppointments: int
    completed: int
    noShows: int
    inQueue: int
    revenue: float
