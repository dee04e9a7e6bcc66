"""Appointment and queue schemas"""

from datetime import date as Date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import parse_time_of_day

AppointmentStatus = Literal[
    "SCHEDULED", "CHECKED_IN", "IN_CONSULTATION", "COMPLETED", "NO_SHOW", "CANCELLED"
]
VisitType = Literal["NEW", "FOLLOW_UP"]


def _normalize_time(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    return parse_time_of_day(v).strftime("%H:%M")


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment"""

    doctorId: int
    patientId: int
    date: Date
    startTime: str  # "HH:MM", clinic-local
    primaryServiceId: Optional[int] = None
    visitType: VisitType = "NEW"
    notesForReception: Optional[str] = None
    notesForDoctor: Optional[str] = None

    @field_validator("primaryServiceId", mode="before")
    @classmethod
    def blank_service(cls, v):
        # The booking form sends "" when no service is picked
        if v == "" or v is None:
            return None
        return v

    @field_validator("startTime")
    @classmethod
    def validate_start_time(cls, v: str) -> str:
        return _normalize_time(v)


class AppointmentUpdate(BaseModel):
    """Any field left out is unchanged. Any status may be set from any other."""

    status: Optional[AppointmentStatus] = None
    date: Optional[Date] = None
    startTime: Optional[str] = None
    notesForReception: Optional[str] = None
    notesForDoctor: Optional[str] = None

    @field_validator("startTime")
    @classmethod
    def validate_start_time(cls, v):
        return _normalize_time(v)


class StatusUpdate(BaseModel):
    status: AppointmentStatus


class DoctorSummary(BaseModel):
    id: int
    name: str
    speciality: Optional[str] = None
    roomNumber: Optional[str] = None


class PatientSummary(BaseModel):
    id: int
    name: str
    phone: str


class ServiceSummary(BaseModel):
    id: int
    name: str


class AppointmentResponse(BaseModel):
    id: int
    date: Date
    startTime: datetime
    tokenNumber: int
    status: str
    visitType: str
    notesForReception: Optional[str] = None
    notesForDoctor: Optional[str] = None
    checkedInAt: Optional[datetime] = None
    consultationStartedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    doctor: DoctorSummary
    patient: PatientSummary
    primaryService: Optional[ServiceSummary] = None


class TokenSlipResponse(BaseModel):
    """Everything printed on the paper token handed to the patient"""

    appointmentId: int
    clinicName: str
    tokenNumber: int
    doctorName: str
    doctorSpeciality: Optional[str] = None
    roomNumber: Optional[str] = None
    patientName: str
    serviceName: Optional[str] = None
    date: str  # "05 Mar 2026"
    time: str  # "09:30"
    message: str


class QueueEntry(BaseModel):
    appointmentId: int
    tokenNumber: int
    status: str
    startTime: datetime
    visitType: str
    patientName: str
    patientPhone: str
    serviceName: Optional[str] = None
    checkedInAt: Optional[datetime] = None


class QueueGroup(BaseModel):
    doctor: DoctorSummary
    nowServing: Optional[QueueEntry] = None
    inConsultation: list[QueueEntry] = []
    checkedIn: list[QueueEntry] = []
    scheduled: list[QueueEntry] = []
    waitingCount: int = 0


class QueueDoctor(BaseModel):
    id: int
    name: str


class QueueResponse(BaseModel):
    date: Date
    generatedAt: datetime
    pollIntervalSeconds: int
    doctors: list[QueueDoctor]
    groups: list[QueueGroup]
