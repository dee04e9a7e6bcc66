from datetime import date

from conftest import auth, make_appointment, make_clinic, make_doctor, make_patient, make_user


def test_register_patient_normalizes_contact(client, owner, clinic):
    r = client.post(
        f"/clinics/{clinic.id}/patients",
        json={
            "name": " Sana Malik ",
            "phone": "+92 321-555 0101",
            "email": "",
            "dateOfBirth": "1990-04-12",
        },
        headers=auth(owner),
    )
    assert r.status_code == 201
    data = r.json()
    assert data["name"] == "Sana Malik"
    assert data["phone"] == "+923215550101"
    assert data["email"] is None
    assert data["dateOfBirth"] == "1990-04-12"


def test_patient_validation(client, owner, clinic):
    url = f"/clinics/{clinic.id}/patients"
    assert client.post(url, json={"name": "X", "phone": "123"}, headers=auth(owner)).status_code == 422
    assert client.post(url, json={"name": " ", "phone": "03001234567"}, headers=auth(owner)).status_code == 422
    r = client.post(
        url, json={"name": "X", "phone": "03001234567", "email": "nope"}, headers=auth(owner)
    )
    assert r.status_code == 422


def test_search_by_name_or_phone(client, db, owner, clinic):
    make_patient(db, clinic, name="Ali Khan", phone="03001234567")
    make_patient(db, clinic, name="Bushra Ali", phone="03117654321")
    make_patient(db, clinic, name="Hamza Tariq", phone="03219998888")
    url = f"/clinics/{clinic.id}/patients"

    everyone = client.get(url, headers=auth(owner)).json()
    assert [p["name"] for p in everyone] == ["Ali Khan", "Bushra Ali", "Hamza Tariq"]

    by_name = client.get(url, params={"search": "ALI"}, headers=auth(owner)).json()
    assert [p["name"] for p in by_name] == ["Ali Khan", "Bushra Ali"]

    by_phone = client.get(url, params={"search": "9998"}, headers=auth(owner)).json()
    assert [p["name"] for p in by_phone] == ["Hamza Tariq"]


def test_patients_are_scoped_to_clinic(client, db, owner, clinic):
    other = make_clinic(db, make_user(db, email="other@example.com"), name="Other Clinic")
    foreign = make_patient(db, other, name="Someone Else")

    assert client.get(f"/clinics/{clinic.id}/patients", headers=auth(owner)).json() == []
    r = client.get(f"/clinics/{clinic.id}/patients/{foreign.id}", headers=auth(owner))
    assert r.status_code == 404


def test_patient_detail_includes_recent_visits(client, db, owner, clinic):
    doctor = make_doctor(db, clinic)
    patient = make_patient(db, clinic)
    make_appointment(db, clinic, doctor, patient, date(2026, 1, 10), 1)
    make_appointment(db, clinic, doctor, patient, date(2026, 2, 20), 4)

    data = client.get(
        f"/clinics/{clinic.id}/patients/{patient.id}", headers=auth(owner)
    ).json()
    visits = data["recentAppointments"]
    assert [v["date"] for v in visits] == ["2026-02-20", "2026-01-10"]
    assert visits[0]["tokenNumber"] == 4
    assert visits[0]["doctorName"] == "Dr. Ayesha"


def test_update_patient(client, db, owner, clinic):
    patient = make_patient(db, clinic)
    url = f"/clinics/{clinic.id}/patients/{patient.id}"

    r = client.patch(url, json={"phone": "0300 765 4321", "notes": "Allergic to penicillin"}, headers=auth(owner))
    assert r.status_code == 200
    assert r.json()["phone"] == "03007654321"
    assert r.json()["name"] == "Ali Khan"
    assert r.json()["notes"] == "Allergic to penicillin"

    assert client.patch(url, json={"name": "  "}, headers=auth(owner)).status_code == 400
