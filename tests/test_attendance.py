import pytest

from perf360 import services
from perf360.models import Role


@pytest.fixture
def people(make_user):
    manager = make_user(Role.MANAGER)
    return {
        "manager": manager,
        "employee": make_user(manager=manager),
        "stranger_manager": make_user(Role.MANAGER),
        "admin": make_user(Role.ADMIN),
    }


def _record(user_id, **overrides):
    body = {
        "userId": user_id,
        "month": 3,
        "year": 2026,
        "workingDays": 20,
        "presentInOffice": 12,
        "leavesAvailed": 4,
        "leaveNotificationsInTeamsChannel": 2,
        "weeklyCompliance": False,
    }
    body.update(overrides)
    return body


def test_attendance_percentage():
    assert services.attendance_percentage(20, 12, 4) == pytest.approx(75.0)
    assert services.attendance_percentage(20, 20, 0) == pytest.approx(100.0)
    assert services.attendance_percentage(5, 0, 5) == 0.0
    assert services.attendance_percentage(0, 0, 0) == 0.0


def test_admin_records_attendance(client, people, auth_headers):
    headers = auth_headers(people["admin"])
    employee = people["employee"]
    resp = client.post("/api/monthly-attendance", json=_record(employee.id), headers=headers)
    assert resp.status_code == 201
    data = resp.json()
    assert data["attendancePercentage"] == pytest.approx(75.0)
    assert data["user"]["id"] == employee.id

    dup = client.post("/api/monthly-attendance", json=_record(employee.id), headers=headers)
    assert dup.status_code == 409

    resp = client.put(
        f"/api/monthly-attendance/{data['id']}", json={"presentInOffice": 16}, headers=headers
    )
    assert resp.status_code == 200
    assert resp.json()["attendancePercentage"] == pytest.approx(100.0)

    resp = client.put(
        f"/api/monthly-attendance/{data['id']}", json={"presentInOffice": 25}, headers=headers
    )
    assert resp.status_code == 400


def test_attendance_bounds(client, people, auth_headers):
    headers = auth_headers(people["admin"])
    employee_id = people["employee"].id
    bad = [
        _record(employee_id, presentInOffice=21),
        _record(employee_id, leavesAvailed=21),
        _record(employee_id, month=13),
        _record(employee_id, year=2019),
        _record(employee_id, workingDays=32),
    ]
    for body in bad:
        resp = client.post("/api/monthly-attendance", json=body, headers=headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Validation failed"
    resp = client.post("/api/monthly-attendance", json=_record(9999), headers=headers)
    assert resp.status_code == 404


def test_only_admins_write(client, people, auth_headers):
    headers = auth_headers(people["manager"])
    resp = client.post("/api/monthly-attendance", json=_record(people["employee"].id), headers=headers)
    assert resp.status_code == 403
    assert client.get("/api/monthly-attendance", headers=headers).status_code == 403


def test_scoped_reads_and_filters(client, people, auth_headers):
    admin = auth_headers(people["admin"])
    employee = people["employee"]
    client.post("/api/monthly-attendance", json=_record(employee.id, month=1), headers=admin)
    client.post("/api/monthly-attendance", json=_record(employee.id, month=2), headers=admin)

    own = client.get(f"/api/monthly-attendance/{employee.id}", headers=auth_headers(employee)).json()
    assert [r["month"] for r in own] == [2, 1]
    assert client.get(
        f"/api/monthly-attendance/{employee.id}", headers=auth_headers(people["manager"])
    ).status_code == 200
    assert client.get(
        f"/api/monthly-attendance/{employee.id}", headers=auth_headers(people["stranger_manager"])
    ).status_code == 403

    february = client.get("/api/monthly-attendance", params={"month": 2}, headers=admin).json()
    assert [r["month"] for r in february] == [2]


def test_manager_comment(client, people, auth_headers):
    admin = auth_headers(people["admin"])
    record_id = client.post(
        "/api/monthly-attendance", json=_record(people["employee"].id), headers=admin
    ).json()["id"]
    url = f"/api/monthly-attendance/{record_id}/comment"
    body = {"reasonForNonCompliance": "Client visits"}

    resp = client.patch(url, json=body, headers=auth_headers(people["manager"]))
    assert resp.status_code == 200
    assert resp.json()["reasonForNonCompliance"] == "Client visits"

    assert client.patch(url, json=body, headers=auth_headers(people["stranger_manager"])).status_code == 403
    assert client.patch(url, json=body, headers=auth_headers(people["employee"])).status_code == 403


def test_delete_record(client, people, auth_headers):
    admin = auth_headers(people["admin"])
    record_id = client.post(
        "/api/monthly-attendance", json=_record(people["employee"].id), headers=admin
    ).json()["id"]
    assert client.delete(f"/api/monthly-attendance/{record_id}", headers=admin).status_code == 200
    assert client.delete(f"/api/monthly-attendance/{record_id}", headers=admin).status_code == 404


def test_bulk_upsert(client, db, people, auth_headers):
    headers = auth_headers(people["admin"])
    employee, manager = people["employee"], people["manager"]
    existing = client.post(
        "/api/monthly-attendance", json=_record(employee.id), headers=headers
    ).json()

    resp = client.post(
        "/api/monthly-attendance/bulk",
        json={
            "records": [
                _record(employee.id, presentInOffice=16),
                _record(manager.id, month=4, leavesAvailed=0),
                _record(9999),
            ]
        },
        headers=headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] == 2
    assert body["errorCount"] == 1
    assert body["errors"] == [
        {"userId": 9999, "month": 3, "year": 2026, "error": "User not found"}
    ]

    updated, created = body["results"]
    assert updated["id"] == existing["id"]
    assert updated["attendancePercentage"] == pytest.approx(100.0)
    assert created["userId"] == manager.id
    assert created["attendancePercentage"] == pytest.approx(60.0)
    assert len(services.list_attendance(db, user_id=employee.id)) == 1


def test_bulk_requires_admin_and_records(client, people, auth_headers):
    employee = people["employee"]
    body = {"records": [_record(employee.id)]}
    resp = client.post(
        "/api/monthly-attendance/bulk", json=body, headers=auth_headers(people["manager"])
    )
    assert resp.status_code == 403

    admin_headers = auth_headers(people["admin"])
    empty = client.post("/api/monthly-attendance/bulk", json={"records": []}, headers=admin_headers)
    assert empty.status_code == 400
    invalid = client.post(
        "/api/monthly-attendance/bulk",
        json={"records": [_record(employee.id, month=13)]},
        headers=admin_headers,
    )
    assert invalid.status_code == 400
