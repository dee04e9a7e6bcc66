from datetime import date, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import (
    add_member,
    auth,
    make_appointment,
    make_clinic,
    make_doctor,
    make_patient,
    make_service,
    make_user,
)

from clinicdesk.domain.appointments.repository import AppointmentRepository
from clinicdesk.domain.appointments.service import MAX_TOKEN_ATTEMPTS
from clinicdesk.models import ROLE_RECEPTION, SUB_CANCELLED, SUB_TRIALING, Appointment
from clinicdesk.shared.timeutils import utcnow

DAY = date(2026, 3, 5)


def book(client, clinic, user, doctor, patient, day=DAY, start="09:30", **extra):
    body = {
        "doctorId": doctor.id,
        "patientId": patient.id,
        "date": day.isoformat(),
        "startTime": start,
        **extra,
    }
    return client.post(f"/clinics/{clinic.id}/appointments", json=body, headers=auth(user))


def test_tokens_are_sequential_per_doctor_and_day(client, db, owner, clinic):
    doctor = make_doctor(db, clinic)
    patient = make_patient(db, clinic)

    tokens = [book(client, clinic, owner, doctor, patient).json()["tokenNumber"] for _ in range(3)]
    assert tokens == [1, 2, 3]


def test_token_sequences_are_independent(client, db, owner, clinic):
    first = make_doctor(db, clinic, name="Dr. Ayesha")
    second = make_doctor(db, clinic, name="Dr. Bilal")
    patient = make_patient(db, clinic)

    book(client, clinic, owner, first, patient)
    book(client, clinic, owner, first, patient)

    assert book(client, clinic, owner, second, patient).json()["tokenNumber"] == 1
    next_day = book(client, clinic, owner, first, patient, day=DAY + timedelta(days=1))
    assert next_day.json()["tokenNumber"] == 1


def test_token_follows_highest_not_count(client, db, owner, clinic):
    doctor = make_doctor(db, clinic)
    patient = make_patient(db, clinic)
    ids = [book(client, clinic, owner, doctor, patient).json()["id"] for _ in range(3)]

    # Deleting a middle booking leaves a gap that is never reused
    client.delete(f"/clinics/{clinic.id}/appointments/{ids[1]}", headers=auth(owner))
    assert book(client, clinic, owner, doctor, patient).json()["tokenNumber"] == 4


def test_booking_response_shape(client, db, owner, clinic):
    doctor = make_doctor(db, clinic, speciality="General Physician", room_number="3")
    patient = make_patient(db, clinic)
    service = make_service(db, clinic)

    response = book(client, clinic, owner, doctor, patient, primaryServiceId=service.id)
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "SCHEDULED"
    assert data["visitType"] == "NEW"
    assert data["date"] == "2026-03-05"
    assert data["startTime"].startswith("2026-03-05T09:30")
    assert data["doctor"] == {
        "id": doctor.id,
        "name": "Dr. Ayesha",
        "speciality": "General Physician",
        "roomNumber": "3",
    }
    assert data["patient"]["phone"] == "03001234567"
    assert data["primaryService"] == {"id": service.id, "name": "Consultation"}


def test_blank_service_is_treated_as_none(client, db, owner, clinic):
    doctor = make_doctor(db, clinic)
    patient = make_patient(db, clinic)
    response = book(client, clinic, owner, doctor, patient, primaryServiceId="")
    assert response.status_code == 201
    assert response.json()["primaryService"] is None


def test_booking_validation(client, db, owner, clinic):
    doctor = make_doctor(db, clinic)
    inactive = make_doctor(db, clinic, name="Dr. Retired", is_active=False)
    patient = make_patient(db, clinic)

    body = {"doctorId": 9999, "patientId": patient.id, "date": "2026-03-05", "startTime": "10:00"}
    r = client.post(f"/clinics/{clinic.id}/appointments", json=body, headers=auth(owner))
    assert r.status_code == 404

    assert book(client, clinic, owner, inactive, patient).status_code == 400

    body = {"doctorId": doctor.id, "patientId": 9999, "date": "2026-03-05", "startTime": "10:00"}
    r = client.post(f"/clinics/{clinic.id}/appointments", json=body, headers=auth(owner))
    assert r.status_code == 404

    assert book(client, clinic, owner, doctor, patient, primaryServiceId=9999).status_code == 404
    assert book(client, clinic, owner, doctor, patient, start="25:00").status_code == 422


def test_doctor_from_other_clinic_is_not_found(client, db, owner, clinic):
    other_owner = make_user(db, email="other@example.com")
    other_clinic = make_clinic(db, other_owner, name="Other Clinic")
    foreign_doctor = make_doctor(db, other_clinic)
    patient = make_patient(db, clinic)

    assert book(client, clinic, owner, foreign_doctor, patient).status_code == 404


def test_reschedule_gets_new_token_for_new_day(client, db, owner, clinic):
    doctor = make_doctor(db, clinic)
    patient = make_patient(db, clinic)
    new_day = DAY + timedelta(days=2)

    book(client, clinic, owner, doctor, patient, day=new_day)
    appt = book(client, clinic, owner, doctor, patient, start="11:15").json()
    assert appt["tokenNumber"] == 1

    r = client.patch(
        f"/clinics/{clinic.id}/appointments/{appt['id']}",
        json={"date": new_day.isoformat()},
        headers=auth(owner),
    )
    assert r.status_code == 200
    data = r.json()
    assert data["date"] == new_day.isoformat()
    assert data["tokenNumber"] == 2
    # Time of day carries over to the new date
    assert data["startTime"].startswith(f"{new_day.isoformat()}T11:15")


def test_update_same_day_keeps_token(client, db, owner, clinic):
    doctor = make_doctor(db, clinic)
    patient = make_patient(db, clinic)
    appt = book(client, clinic, owner, doctor, patient).json()

    r = client.patch(
        f"/clinics/{clinic.id}/appointments/{appt['id']}",
        json={"startTime": "16:45", "notesForDoctor": "BP check"},
        headers=auth(owner),
    )
    data = r.json()
    assert data["tokenNumber"] == appt["tokenNumber"]
    assert data["startTime"].startswith("2026-03-05T16:45")
    assert data["notesForDoctor"] == "BP check"


def test_status_timestamps_are_stamped_once(client, db, owner, clinic):
    doctor = make_doctor(db, clinic)
    patient = make_patient(db, clinic)
    appt_id = book(client, clinic, owner, doctor, patient).json()["id"]
    url = f"/clinics/{clinic.id}/appointments/{appt_id}"

    checked_in = client.patch(url, json={"status": "CHECKED_IN"}, headers=auth(owner)).json()
    assert checked_in["checkedInAt"] is not None
    assert checked_in["consultationStartedAt"] is None

    # Any status may follow any other, the first stamp is kept
    client.patch(url, json={"status": "NO_SHOW"}, headers=auth(owner))
    again = client.patch(url, json={"status": "CHECKED_IN"}, headers=auth(owner)).json()
    assert again["status"] == "CHECKED_IN"
    assert again["checkedInAt"] == checked_in["checkedInAt"]

    done = client.patch(url, json={"status": "COMPLETED"}, headers=auth(owner)).json()
    assert done["completedAt"] is not None

    assert client.patch(url, json={"status": "LOST"}, headers=auth(owner)).status_code == 422


def test_list_filters_by_date_and_doctor(client, db, owner, clinic):
    first = make_doctor(db, clinic, name="Dr. Ayesha")
    second = make_doctor(db, clinic, name="Dr. Bilal")
    patient = make_patient(db, clinic)
    book(client, clinic, owner, first, patient, start="10:00")
    book(client, clinic, owner, second, patient, start="09:00")
    book(client, clinic, owner, first, patient, day=DAY + timedelta(days=1))

    url = f"/clinics/{clinic.id}/appointments"
    day_list = client.get(url, params={"date": DAY.isoformat()}, headers=auth(owner)).json()
    assert [a["doctor"]["name"] for a in day_list] == ["Dr. Bilal", "Dr. Ayesha"]

    only_first = client.get(
        url, params={"date": DAY.isoformat(), "doctorId": first.id}, headers=auth(owner)
    ).json()
    assert len(only_first) == 1


def test_delete_and_missing(client, db, owner, clinic):
    doctor = make_doctor(db, clinic)
    patient = make_patient(db, clinic)
    appt_id = book(client, clinic, owner, doctor, patient).json()["id"]
    url = f"/clinics/{clinic.id}/appointments/{appt_id}"

    assert client.delete(url, headers=auth(owner)).json() == {"success": True}
    assert client.delete(url, headers=auth(owner)).status_code == 404
    assert client.get(f"{url}/token", headers=auth(owner)).status_code == 404


def test_token_slip(client, db, owner, clinic):
    doctor = make_doctor(db, clinic, speciality="ENT", room_number="7")
    patient = make_patient(db, clinic)
    service = make_service(db, clinic, name="Follow-up")
    appt_id = book(
        client, clinic, owner, doctor, patient, start="09:05", primaryServiceId=service.id
    ).json()["id"]

    slip = client.get(
        f"/clinics/{clinic.id}/appointments/{appt_id}/token", headers=auth(owner)
    ).json()
    assert slip == {
        "appointmentId": appt_id,
        "clinicName": "Shifa Clinic",
        "tokenNumber": 1,
        "doctorName": "Dr. Ayesha",
        "doctorSpeciality": "ENT",
        "roomNumber": "7",
        "patientName": "Ali Khan",
        "serviceName": "Follow-up",
        "date": "05 Mar 2026",
        "time": "09:05",
        "message": "Please wait for your token to be called",
    }


def test_booking_requires_live_subscription(client, db, owner):
    expired = make_clinic(
        db, owner, status=SUB_TRIALING, trial_ends_at=utcnow() - timedelta(days=1)
    )
    doctor = make_doctor(db, expired)
    patient = make_patient(db, expired)

    r = book(client, expired, owner, doctor, patient)
    assert r.status_code == 403
    assert r.headers["X-Subscription-Required"] == "true"

    # Reads stay available without a subscription
    assert client.get(f"/clinics/{expired.id}/appointments", headers=auth(owner)).status_code == 200


def test_cancelled_subscription_blocks_booking(client, db, owner):
    cancelled = make_clinic(db, owner, status=SUB_CANCELLED)
    doctor = make_doctor(db, cancelled)
    patient = make_patient(db, cancelled)
    assert book(client, cancelled, owner, doctor, patient).status_code == 403


def test_reception_can_book_but_outsiders_cannot(client, db, owner, clinic):
    receptionist = add_member(db, clinic, ROLE_RECEPTION, "desk@example.com")
    outsider = make_user(db, email="outsider@example.com")
    doctor = make_doctor(db, clinic)
    patient = make_patient(db, clinic)

    assert book(client, clinic, receptionist, doctor, patient).status_code == 201
    assert book(client, clinic, outsider, doctor, patient).status_code == 403
    r = client.get(f"/clinics/{clinic.id}/appointments")
    assert r.status_code == 401


def test_unique_token_constraint(db, owner, clinic):
    doctor = make_doctor(db, clinic)
    patient = make_patient(db, clinic)
    make_appointment(db, clinic, doctor, patient, DAY, token=1)
    db.add(
        Appointment(
            clinic_id=clinic.id,
            doctor_id=doctor.id,
            patient_id=patient.id,
            appointment_date=DAY,
            start_time=utcnow(),
            token_number=1,
        )
    )
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def stale_tokens(monkeypatch, times):
    """Make next_token_number hand out token 1 for the first `times` calls"""
    real = AppointmentRepository.next_token_number
    calls = {"n": 0}

    def next_token_number(db, clinic_id, doctor_id, day):
        calls["n"] += 1
        if calls["n"] <= times:
            return 1
        return real(db, clinic_id, doctor_id, day)

    monkeypatch.setattr(AppointmentRepository, "next_token_number", staticmethod(next_token_number))
    return calls


def test_booking_retries_after_token_collision(client, db, owner, clinic, monkeypatch):
    doctor = make_doctor(db, clinic)
    patient = make_patient(db, clinic)
    make_appointment(db, clinic, doctor, patient, DAY, token=1)
    calls = stale_tokens(monkeypatch, times=1)

    r = book(client, clinic, owner, doctor, patient)
    assert r.status_code == 201
    assert r.json()["tokenNumber"] == 2
    assert calls["n"] == 2


def test_booking_gives_up_after_repeated_collisions(client, db, owner, clinic, monkeypatch):
    doctor = make_doctor(db, clinic)
    patient = make_patient(db, clinic)
    make_appointment(db, clinic, doctor, patient, DAY, token=1)
    calls = stale_tokens(monkeypatch, times=MAX_TOKEN_ATTEMPTS)

    r = book(client, clinic, owner, doctor, patient)
    assert r.status_code == 409
    assert calls["n"] == MAX_TOKEN_ATTEMPTS
    assert db.query(Appointment).count() == 1


def test_reschedule_retries_after_token_collision(client, db, owner, clinic, monkeypatch):
    doctor = make_doctor(db, clinic)
    patient = make_patient(db, clinic)
    make_appointment(db, clinic, doctor, patient, DAY + timedelta(days=1), token=1)
    moving = make_appointment(db, clinic, doctor, patient, DAY, token=1)
    stale_tokens(monkeypatch, times=1)

    r = client.patch(
        f"/clinics/{clinic.id}/appointments/{moving.id}",
        json={"date": (DAY + timedelta(days=1)).isoformat()},
        headers=auth(owner),
    )
    assert r.status_code == 200
    assert r.json()["tokenNumber"] == 2
    assert r.json()["date"] == (DAY + timedelta(days=1)).isoformat()


def test_reschedule_gives_up_after_repeated_collisions(client, db, owner, clinic, monkeypatch):
    doctor = make_doctor(db, clinic)
    patient = make_patient(db, clinic)
    make_appointment(db, clinic, doctor, patient, DAY + timedelta(days=1), token=1)
    moving = make_appointment(db, clinic, doctor, patient, DAY, token=1)
    stale_tokens(monkeypatch, times=MAX_TOKEN_ATTEMPTS)

    r = client.patch(
        f"/clinics/{clinic.id}/appointments/{moving.id}",
        json={"date": (DAY + timedelta(days=1)).isoformat()},
        headers=auth(owner),
    )
    assert r.status_code == 409

    db.expire_all()
    stored = db.get(Appointment, moving.id)
    assert (stored.appointment_date, stored.token_number) == (DAY, 1)
