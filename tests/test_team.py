from datetime import date

from conftest import add_member, auth, make_appointment, make_doctor, make_patient, make_user

from clinicdesk.models import ROLE_DOCTOR, ROLE_RECEPTION, ClinicMembership, Doctor, User


def members_url(clinic):
    return f"/clinics/{clinic.id}/members"


def test_add_receptionist(client, db, owner, clinic):
    r = client.post(
        members_url(clinic),
        json={"email": "Desk@Example.com", "name": " Hina ", "cnic": "35202-1234567-1"},
        headers=auth(owner),
    )
    assert r.status_code == 201
    data = r.json()
    assert data["role"] == ROLE_RECEPTION
    assert data["user"]["email"] == "desk@example.com"
    assert data["user"]["name"] == "Hina"
    assert data["user"]["cnic"] == "3520212345671"
    assert data["doctor"] is None

    db.expire_all()
    user = db.query(User).filter(User.email == "desk@example.com").one()
    # Linked to Firebase on first sign-in
    assert user.firebase_uid is None


def test_add_doctor_member_creates_doctor_record(client, db, owner, clinic):
    r = client.post(
        members_url(clinic),
        json={
            "email": "dr.zara@example.com",
            "name": "Dr. Zara",
            "role": ROLE_DOCTOR,
            "speciality": "Dermatology",
            "roomNumber": "5",
        },
        headers=auth(owner),
    )
    assert r.status_code == 201
    doctor = r.json()["doctor"]
    assert doctor["speciality"] == "Dermatology"
    assert doctor["roomNumber"] == "5"
    assert doctor["isActive"] is True

    roster = client.get(f"/clinics/{clinic.id}/doctors", headers=auth(owner)).json()
    assert [d["name"] for d in roster] == ["Dr. Zara"]
    assert roster[0]["userId"] == r.json()["user"]["id"]


def test_doctor_member_respects_plan_limit(client, db, owner, clinic):
    for i in range(3):
        make_doctor(db, clinic, name=f"Dr. {i}")

    r = client.post(
        members_url(clinic),
        json={"email": "dr.new@example.com", "name": "Dr. New", "role": ROLE_DOCTOR},
        headers=auth(owner),
    )
    assert r.status_code == 403
    db.expire_all()
    assert db.query(User).filter(User.email == "dr.new@example.com").first() is None


def test_duplicate_identity_is_rejected(client, db, owner, clinic):
    make_user(db, email="taken@example.com", cnic="1111111111111")
    url = members_url(clinic)

    r = client.post(url, json={"email": "taken@example.com", "name": "X"}, headers=auth(owner))
    assert r.status_code == 400
    assert r.json()["detail"] == "Email is already taken by another user."

    r = client.post(
        url, json={"email": "new@example.com", "name": "X", "cnic": "1111-111111111"}, headers=auth(owner)
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "CNIC is already taken by another user."

    assert client.post(url, json={"email": "", "name": "X"}, headers=auth(owner)).status_code == 422


def test_list_members_in_join_order(client, db, owner, clinic):
    add_member(db, clinic, ROLE_RECEPTION, "desk@example.com")
    members = client.get(members_url(clinic), headers=auth(owner)).json()
    assert [m["user"]["email"] for m in members] == ["owner@example.com", "desk@example.com"]


def test_team_is_admin_only(client, db, owner, clinic):
    desk = add_member(db, clinic, ROLE_RECEPTION, "desk@example.com")
    assert client.get(members_url(clinic), headers=auth(desk)).status_code == 403


def test_role_changes_follow_doctor_record(client, db, owner, clinic):
    user = add_member(db, clinic, ROLE_RECEPTION, "hamid@example.com")
    member = db.query(ClinicMembership).filter(ClinicMembership.user_id == user.id).one()
    url = f"{members_url(clinic)}/{member.id}"

    promoted = client.patch(url, json={"role": ROLE_DOCTOR, "speciality": "ENT"}, headers=auth(owner))
    assert promoted.status_code == 200
    assert promoted.json()["doctor"]["speciality"] == "ENT"

    demoted = client.patch(url, json={"role": ROLE_RECEPTION}, headers=auth(owner))
    assert demoted.json()["role"] == ROLE_RECEPTION

    db.expire_all()
    (doctor,) = db.query(Doctor).filter(Doctor.user_id == user.id).all()
    assert doctor.is_active is False

    # Promoting again reuses and reactivates the same record
    again = client.patch(url, json={"role": ROLE_DOCTOR}, headers=auth(owner)).json()
    assert again["doctor"]["id"] == doctor.id
    assert again["doctor"]["speciality"] == "ENT"
    assert again["doctor"]["isActive"] is True


def test_update_member_rejects_taken_email(client, db, owner, clinic):
    user = add_member(db, clinic, ROLE_RECEPTION, "desk@example.com")
    member = db.query(ClinicMembership).filter(ClinicMembership.user_id == user.id).one()
    r = client.patch(
        f"{members_url(clinic)}/{member.id}", json={"email": "owner@example.com"}, headers=auth(owner)
    )
    assert r.status_code == 400


def test_delete_member(client, db, owner, clinic):
    user = add_member(db, clinic, ROLE_RECEPTION, "desk@example.com")
    member = db.query(ClinicMembership).filter(ClinicMembership.user_id == user.id).one()

    r = client.delete(f"{members_url(clinic)}/{member.id}", headers=auth(owner))
    assert r.json() == {"message": "Member removed successfully"}

    db.expire_all()
    assert db.get(ClinicMembership, member.id) is None
    assert db.get(User, user.id) is not None
    assert client.get(f"/clinics/{clinic.id}", headers=auth(user)).status_code == 403


def test_cannot_delete_self_or_owner(client, db, owner, clinic):
    second_admin = add_member(db, clinic, "ADMIN", "admin2@example.com")
    owner_member = db.query(ClinicMembership).filter(ClinicMembership.user_id == owner.id).one()
    admin_member = db.query(ClinicMembership).filter(ClinicMembership.user_id == second_admin.id).one()

    r = client.delete(f"{members_url(clinic)}/{admin_member.id}", headers=auth(second_admin))
    assert r.status_code == 400
    r = client.delete(f"{members_url(clinic)}/{owner_member.id}", headers=auth(second_admin))
    assert r.status_code == 400
    assert r.json()["detail"] == "Cannot delete the clinic owner"


def test_deleting_doctor_member_keeps_history(client, db, owner, clinic):
    user = add_member(db, clinic, ROLE_DOCTOR, "dr.old@example.com")
    member = db.query(ClinicMembership).filter(ClinicMembership.user_id == user.id).one()
    doctor = make_doctor(db, clinic, name="Dr. Old", user_id=user.id)
    make_appointment(db, clinic, doctor, make_patient(db, clinic), date(2026, 1, 5), 1)

    client.delete(f"{members_url(clinic)}/{member.id}", headers=auth(owner))

    db.expire_all()
    kept = db.get(Doctor, doctor.id)
    assert kept is not None
    assert kept.is_active is False
    assert kept.user_id is None
