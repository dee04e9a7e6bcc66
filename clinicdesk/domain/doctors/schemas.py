"""Doctor domain schemas"""

from typing import Optional

from pydantic import BaseModel, field_validator


class DoctorCreate(BaseModel):
    name: str
    speciality: Optional[str] = None
    roomNumber: Optional[str] = None
    isActive: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Doctor name is required")
        return v


class DoctorUpdate(BaseModel):
    name: Optional[str] = None
    speciality: Optional[str] = None
    roomNumber: Optional[str] = None
    isActive: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Doctor name cannot be empty")
        return v.strip() if v else v


class DoctorResponse(BaseModel):
    id: int
    name: str
    speciality: Optional[str] = None
    roomNumber: Optional[str] = None
    isActive: bool
    userId: Optional[int] = None
