import base64
import os
from datetime import date, datetime, timedelta

# Configure the app before it is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["FIREBASE_PROJECT_ID"] = "clinicdesk-test"
os.environ["DODO_PAYMENTS_WEBHOOK_SECRET"] = "whsec_" + base64.b64encode(
    b"test-webhook-signing-key"
).decode()
os.environ["DODO_PRODUCT_ID_BASIC"] = "prod_basic"
os.environ["DODO_PRODUCT_ID_PRO"] = "prod_pro"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ.pop("DODO_PAYMENTS_API_KEY", None)
os.environ.pop("RESEND_API_KEY", None)

import pytest  # noqa: E402
from fastapi import Depends, HTTPException, Request  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from clinicdesk import cache as cache_module  # noqa: E402
from clinicdesk.auth import get_current_user  # noqa: E402
from clinicdesk.database import Base, SessionLocal, engine, get_db  # noqa: E402
from clinicdesk.main import app  # noqa: E402
from clinicdesk.models import (  # noqa: E402
    PLAN_BASIC,
    ROLE_ADMIN,
    STATUS_SCHEDULED,
    SUB_TRIALING,
    Appointment,
    Clinic,
    ClinicMembership,
    ClinicService,
    Doctor,
    Patient,
    Subscription,
    User,
)
from clinicdesk.shared.timeutils import utcnow  # noqa: E402


class FakeRedis:
    """The subset of redis.Redis the cache uses"""

    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        return True

    def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0

    def ping(self):
        return True


@pytest.fixture(autouse=True)
def fake_redis():
    redis = FakeRedis()
    cache_module.cache.redis_client = redis
    yield redis
    cache_module.cache.redis_client = None


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


async def _header_user(request: Request, db=Depends(get_db)) -> User:
    """Authenticate test requests by the X-Test-User header (a user id)"""
    user_id = request.headers.get("X-Test-User")
    user = db.get(User, int(user_id)) if user_id else None
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


@pytest.fixture
def client():
    def override_get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = _header_user
    # No context manager: the lifespan would try to reach a real Redis
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(user: User) -> dict:
    return {"X-Test-User": str(user.id)}


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def make_user(db, email="owner@example.com", name="Owner", cnic=None) -> User:
    user = User(firebase_uid=f"uid-{email}", email=email, full_name=name, cnic=cnic)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_clinic(
    db,
    owner: User,
    name="Shifa Clinic",
    slug=None,
    status=SUB_TRIALING,
    plan=PLAN_BASIC,
    trial_ends_at=None,
    current_period_end=None,
    timezone="UTC",
    clinic_id=None,
) -> Clinic:
    clinic = Clinic(name=name, slug=slug or name.lower().replace(" ", "-"), owner_id=owner.id, timezone=timezone)
    if clinic_id:
        clinic.id = clinic_id
    db.add(clinic)
    db.flush()
    db.add(ClinicMembership(user_id=owner.id, clinic_id=clinic.id, role=ROLE_ADMIN))
    db.add(
        Subscription(
            clinic_id=clinic.id,
            status=status,
            current_plan=plan,
            trial_ends_at=(
                trial_ends_at
                if trial_ends_at is not None
                else (utcnow() + timedelta(days=14) if status == SUB_TRIALING else None)
            ),
            current_period_end=current_period_end,
        )
    )
    db.commit()
    db.refresh(clinic)
    return clinic


def add_member(db, clinic: Clinic, role: str, email: str) -> User:
    user = make_user(db, email=email, name=email.split("@")[0])
    db.add(ClinicMembership(user_id=user.id, clinic_id=clinic.id, role=role))
    db.commit()
    return user


def make_doctor(db, clinic: Clinic, name="Dr. Ayesha", is_active=True, **fields) -> Doctor:
    doctor = Doctor(clinic_id=clinic.id, name=name, is_active=is_active, **fields)
    db.add(doctor)
    db.commit()
    db.refresh(doctor)
    return doctor


def make_patient(db, clinic: Clinic, name="Ali Khan", phone="03001234567", email=None) -> Patient:
    patient = Patient(clinic_id=clinic.id, name=name, phone=phone, email=email)
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient


def make_service(db, clinic: Clinic, name="Consultation", price=1500.0) -> ClinicService:
    svc = ClinicService(clinic_id=clinic.id, name=name, price=price)
    db.add(svc)
    db.commit()
    db.refresh(svc)
    return svc


def make_appointment(
    db,
    clinic: Clinic,
    doctor: Doctor,
    patient: Patient,
    day: date,
    token: int,
    status=STATUS_SCHEDULED,
    hhmm=(9, 0),
    service: ClinicService = None,
) -> Appointment:
    appt = Appointment(
        clinic_id=clinic.id,
        doctor_id=doctor.id,
        patient_id=patient.id,
        primary_service_id=service.id if service else None,
        appointment_date=day,
        start_time=datetime.combine(day, datetime.min.time()).replace(hour=hhmm[0], minute=hhmm[1]),
        token_number=token,
        status=status,
    )
    db.add(appt)
    db.commit()
    db.refresh(appt)
    return appt


@pytest.fixture
def owner(db):
    return make_user(db)


@pytest.fixture
def clinic(db, owner):
    return make_clinic(db, owner)
