from conftest import add_member, auth, make_clinic, make_doctor, make_user

from clinicdesk.models import PLAN_ENTERPRISE, PLAN_PRO, ROLE_RECEPTION, SUB_ACTIVE
from clinicdesk.plan_limits import can_add_doctor, get_doctor_limit


def test_doctor_limits_per_plan():
    assert get_doctor_limit("BASIC") == 3
    assert get_doctor_limit("pro") == 10
    assert get_doctor_limit(PLAN_ENTERPRISE) is None
    assert get_doctor_limit(None) == 3
    assert get_doctor_limit("GOLD") == 3


def test_create_and_list_doctors(client, db, owner, clinic):
    url = f"/clinics/{clinic.id}/doctors"
    r = client.post(
        url,
        json={"name": " Dr. Zara ", "speciality": "Paediatrics", "roomNumber": "2"},
        headers=auth(owner),
    )
    assert r.status_code == 201
    assert r.json()["name"] == "Dr. Zara"
    assert r.json()["isActive"] is True

    client.post(url, json={"name": "Dr. Ahmed", "isActive": False}, headers=auth(owner))

    names = [d["name"] for d in client.get(url, headers=auth(owner)).json()]
    assert names == ["Dr. Ahmed", "Dr. Zara"]
    active = client.get(url, params={"activeOnly": "true"}, headers=auth(owner)).json()
    assert [d["name"] for d in active] == ["Dr. Zara"]


def test_basic_plan_allows_three_active_doctors(client, db, owner, clinic):
    url = f"/clinics/{clinic.id}/doctors"
    for i in range(3):
        assert client.post(url, json={"name": f"Dr. {i}"}, headers=auth(owner)).status_code == 201

    r = client.post(url, json={"name": "Dr. Fourth"}, headers=auth(owner))
    assert r.status_code == 403
    assert "BASIC plan allows up to 3" in r.json()["detail"]

    # Inactive doctors do not count against the plan
    inactive = client.post(url, json={"name": "Dr. Spare", "isActive": False}, headers=auth(owner))
    assert inactive.status_code == 201

    # ...but reactivating one does
    r = client.patch(f"{url}/{inactive.json()['id']}", json={"isActive": True}, headers=auth(owner))
    assert r.status_code == 403


def test_deactivating_frees_a_seat(client, db, owner, clinic):
    doctors = [make_doctor(db, clinic, name=f"Dr. {i}") for i in range(3)]
    url = f"/clinics/{clinic.id}/doctors"

    r = client.patch(f"{url}/{doctors[0].id}", json={"isActive": False}, headers=auth(owner))
    assert r.json()["isActive"] is False
    assert client.post(url, json={"name": "Dr. New"}, headers=auth(owner)).status_code == 201


def test_pro_plan_limit(db, owner):
    pro = make_clinic(db, owner, name="Pro Clinic", status=SUB_ACTIVE, plan=PLAN_PRO)
    for i in range(9):
        make_doctor(db, pro, name=f"Dr. {i}")
    assert can_add_doctor(pro.id, db) == (True, None)

    make_doctor(db, pro, name="Dr. 10")
    allowed, message = can_add_doctor(pro.id, db)
    assert allowed is False
    assert "PRO plan allows up to 10" in message


def test_doctor_management_is_admin_only(client, db, owner, clinic):
    desk = add_member(db, clinic, ROLE_RECEPTION, "desk@example.com")
    doctor = make_doctor(db, clinic)
    url = f"/clinics/{clinic.id}/doctors"

    assert client.get(url, headers=auth(desk)).status_code == 200
    assert client.post(url, json={"name": "Dr. X"}, headers=auth(desk)).status_code == 403
    r = client.patch(f"{url}/{doctor.id}", json={"name": "Dr. Y"}, headers=auth(desk))
    assert r.status_code == 403


def test_doctor_from_another_clinic_is_not_found(client, db, owner, clinic):
    other = make_clinic(db, make_user(db, email="other@example.com"), name="Other Clinic")
    foreign = make_doctor(db, other)
    r = client.patch(
        f"/clinics/{clinic.id}/doctors/{foreign.id}", json={"name": "Dr. Y"}, headers=auth(owner)
    )
    assert r.status_code == 404
