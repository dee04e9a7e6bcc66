import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# Membership roles, lowest privilege first
ROLE_RECEPTION = "RECEPTION"
ROLE_DOCTOR = "DOCTOR"
ROLE_ADMIN = "ADMIN"
ROLE_RANK = {ROLE_RECEPTION: 1, ROLE_DOCTOR: 2, ROLE_ADMIN: 3}

# Appointment lifecycle
STATUS_SCHEDULED = "SCHEDULED"
STATUS_CHECKED_IN = "CHECKED_IN"
STATUS_IN_CONSULTATION = "IN_CONSULTATION"
STATUS_COMPLETED = "COMPLETED"
STATUS_NO_SHOW = "NO_SHOW"
STATUS_CANCELLED = "CANCELLED"
APPOINTMENT_STATUSES = (
    STATUS_SCHEDULED,
    STATUS_CHECKED_IN,
    STATUS_IN_CONSULTATION,
    STATUS_COMPLETED,
    STATUS_NO_SHOW,
    STATUS_CANCELLED,
)
# Statuses that keep an appointment on the live queue
QUEUE_STATUSES = (STATUS_SCHEDULED, STATUS_CHECKED_IN, STATUS_IN_CONSULTATION)

# Subscription plans and statuses
PLAN_BASIC = "BASIC"
PLAN_PRO = "PRO"
PLAN_ENTERPRISE = "ENTERPRISE"
SUB_TRIALING = "TRIALING"
SUB_ACTIVE = "ACTIVE"
SUB_PAST_DUE = "PAST_DUE"
SUB_CANCELLED = "CANCELLED"


def generate_public_id():
    """Generate an opaque id for tenant-facing URLs"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    # Null until an invited member signs in for the first time
    firebase_uid = Column(String(255), unique=True, index=True, nullable=True)
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    cnic = Column(String(20), unique=True, index=True, nullable=True)  # National ID, digits only
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    memberships = relationship(
        "ClinicMembership", back_populates="user", cascade="all, delete-orphan"
    )


class Clinic(Base):
    __tablename__ = "clinics"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    timezone = Column(String(64), nullable=False, default="UTC")  # IANA name
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("User")
    memberships = relationship(
        "ClinicMembership", back_populates="clinic", cascade="all, delete-orphan"
    )
    doctors = relationship("Doctor", back_populates="clinic", cascade="all, delete-orphan")
    subscription = relationship(
        "Subscription", back_populates="clinic", uselist=False, cascade="all, delete-orphan"
    )


class ClinicMembership(Base):
    __tablename__ = "clinic_memberships"
    __table_args__ = (UniqueConstraint("user_id", "clinic_id", name="uq_membership_user_clinic"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    clinic_id = Column(
        String(36), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role = Column(String(20), nullable=False, default=ROLE_RECEPTION)  # RECEPTION, DOCTOR, ADMIN
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="memberships")
    clinic = relationship("Clinic", back_populates="memberships")


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(
        String(36), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Set when the doctor is also a team member who can sign in
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(255), nullable=False)
    speciality = Column(String(255), nullable=True)
    room_number = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    clinic = relationship("Clinic", back_populates="doctors")
    user = relationship("User")


class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(
        String(36), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)  # Digits with optional leading +
    email = Column(String(255), nullable=True)
    gender = Column(String(20), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class ClinicService(Base):
    """A billable service on the clinic's price list (consultation, dressing, ...)"""

    __tablename__ = "clinic_services"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(
        String(36), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    price = Column(Float, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # Token numbers are unique per doctor per day; concurrent inserts race on this
        UniqueConstraint(
            "clinic_id",
            "doctor_id",
            "appointment_date",
            "token_number",
            name="uq_appointment_token",
        ),
        Index("ix_appointments_clinic_date_status", "clinic_id", "appointment_date", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(
        String(36), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    primary_service_id = Column(
        Integer, ForeignKey("clinic_services.id", ondelete="SET NULL"), nullable=True
    )

    appointment_date = Column(Date, nullable=False)  # Clinic-local calendar day
    start_time = Column(DateTime, nullable=False)  # Clinic-local wall clock
    token_number = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=STATUS_SCHEDULED)
    visit_type = Column(String(20), nullable=False, default="NEW")  # NEW, FOLLOW_UP
    notes_for_reception = Column(Text, nullable=True)
    notes_for_doctor = Column(Text, nullable=True)

    # Stamped the first time each queue stage is reached
    checked_in_at = Column(DateTime, nullable=True)
    consultation_started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    clinic = relationship("Clinic")
    doctor = relationship("Doctor")
    patient = relationship("Patient")
    primary_service = relationship("ClinicService")


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(
        String(36), ForeignKey("clinics.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    status = Column(String(20), nullable=False, default=SUB_TRIALING)
    current_plan = Column(String(20), nullable=False, default=PLAN_BASIC)
    trial_ends_at = Column(DateTime, nullable=True)
    current_period_end = Column(DateTime, nullable=True)
    cancel_at_period_end = Column(Boolean, default=False, nullable=False)
    # Dodo identifiers; subscription id is cleared once the subscription is cancelled
    dodo_customer_id = Column(String(255), nullable=True, index=True)
    dodo_subscription_id = Column(String(255), nullable=True, index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    clinic = relationship("Clinic", back_populates="subscription")
