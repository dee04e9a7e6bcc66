import asyncio
from datetime import timedelta

import pytest
from conftest import make_appointment, make_clinic, make_doctor, make_patient, make_user

from clinicdesk.domain.reports.service import ReportService
from clinicdesk.models import STATUS_CANCELLED, SUB_CANCELLED
from clinicdesk.models_invoice import INVOICE_PAID, Invoice
from clinicdesk.shared.timeutils import utcnow

CRON_HEADERS = {"x-cron-secret": "test-cron-secret"}


@pytest.mark.parametrize("headers", [{}, {"x-cron-secret": "wrong"}])
def test_cron_requires_secret(client, headers):
    assert client.get("/cron/reminders", headers=headers).status_code == 401
    assert client.get("/cron/daily-summary", headers=headers).status_code == 401


def test_unset_secret_locks_cron(client, monkeypatch):
    monkeypatch.setattr("clinicdesk.config.CRON_SECRET", None)
    assert client.get("/cron/reminders", headers=CRON_HEADERS).status_code == 401


def test_reminders_cover_tomorrow(client, db, clinic):
    tomorrow = utcnow().date() + timedelta(days=1)
    doctor = make_doctor(db, clinic)
    with_email = make_patient(db, clinic, name="Ali Khan", email="ali@example.com")
    phone_only = make_patient(db, clinic, name="Bano", phone="03110000000")
    make_appointment(db, clinic, doctor, with_email, tomorrow, 1, hhmm=(10, 30))
    make_appointment(db, clinic, doctor, phone_only, tomorrow, 2)
    make_appointment(db, clinic, doctor, phone_only, tomorrow, 3, STATUS_CANCELLED)
    make_appointment(db, clinic, doctor, phone_only, tomorrow + timedelta(days=1), 1)

    lapsed = make_clinic(db, make_user(db, email="lapsed@example.com"), name="Lapsed", status=SUB_CANCELLED)
    make_appointment(db, lapsed, make_doctor(db, lapsed), make_patient(db, lapsed), tomorrow, 1)

    r = client.get("/cron/reminders", headers=CRON_HEADERS)
    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert data["remindersSent"] == 2

    by_patient = {row["patientName"]: row for row in data["reminders"]}
    assert set(by_patient) == {"Ali Khan", "Bano"}
    ali = by_patient["Ali Khan"]
    assert ali["clinicName"] == "Shifa Clinic"
    assert ali["doctorName"] == "Dr. Ayesha"
    assert ali["date"] == tomorrow.isoformat()
    assert ali["startTime"] == "10:30"
    assert ali["patientEmail"] == "ali@example.com"
    # No email provider configured in tests
    assert ali["emailed"] is False
    assert by_patient["Bano"]["patientPhone"] == "03110000000"


def test_daily_summary(client, db, clinic):
    yesterday = utcnow().date() - timedelta(days=1)
    doctor = make_doctor(db, clinic)
    patient = make_patient(db, clinic)
    make_appointment(db, clinic, doctor, patient, yesterday, 1)
    make_appointment(db, clinic, doctor, patient, yesterday, 2)
    make_appointment(db, clinic, doctor, patient, yesterday + timedelta(days=1), 1)
    db.add(
        Invoice(
            clinic_id=clinic.id,
            patient_id=patient.id,
            invoice_number="INV-TEST-000001",
            subtotal=1500,
            total_amount=1500,
            status=INVOICE_PAID,
            paid_at=utcnow() - timedelta(days=1),
        )
    )
    db.commit()

    data = client.get("/cron/daily-summary", headers=CRON_HEADERS).json()
    assert data["date"] == yesterday.isoformat()
    (summary,) = data["summaries"]
    assert summary["clinicId"] == clinic.id
    assert summary["appointments"] == 2
    assert summary["revenue"] == 1500.0
    assert summary["emailed"] is False


def test_reminders_skip_clinics_whose_trial_ran_out(db, clinic):
    later = utcnow() + timedelta(days=20)
    doctor = make_doctor(db, clinic)
    make_appointment(db, clinic, doctor, make_patient(db, clinic), later.date() + timedelta(days=1), 1)

    service = ReportService(db)
    assert asyncio.run(service.send_reminders(now=later))["remindersSent"] == 0

    within_trial = later - timedelta(days=10)
    make_appointment(
        db, clinic, doctor, make_patient(db, clinic, name="Sara"), within_trial.date() + timedelta(days=1), 1
    )
    assert asyncio.run(service.send_reminders(now=within_trial))["remindersSent"] == 1


def test_worker_schedules_both_jobs():
    from clinicdesk.worker import WorkerSettings, appointment_reminders_task, daily_summary_task

    assert WorkerSettings.functions == [appointment_reminders_task, daily_summary_task]
    assert len(WorkerSettings.cron_jobs) == 2
