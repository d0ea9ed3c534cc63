import pytest

from perf360.models import BusinessUnit, Role, Team


@pytest.fixture
def admin_headers(make_user, auth_headers):
    return auth_headers(make_user(Role.ADMIN))


@pytest.mark.parametrize("base", ["/api/teams", "/api/business-units"])
def test_crud_and_membership(client, make_user, admin_headers, base):
    member = make_user()
    resp = client.post(base, json={"name": "Platform", "description": "Core"}, headers=admin_headers)
    assert resp.status_code == 201
    unit_id = resp.json()["id"]

    dup = client.post(base, json={"name": "platform"}, headers=admin_headers)
    assert dup.status_code == 409

    resp = client.post(f"{base}/{unit_id}/members", json={"userId": member.id}, headers=admin_headers)
    assert resp.status_code == 200
    assert [m["userId"] for m in resp.json()["members"]] == [member.id]

    again = client.post(f"{base}/{unit_id}/members", json={"userId": member.id}, headers=admin_headers)
    assert again.status_code == 400

    resp = client.delete(f"{base}/{unit_id}/members/{member.id}", headers=admin_headers)
    assert resp.json()["members"] == []

    resp = client.post(f"{base}/{unit_id}/members", json={"userId": member.id}, headers=admin_headers)
    assert resp.status_code == 200
    assert len(resp.json()["members"]) == 1

    resp = client.put(f"{base}/{unit_id}", json={"name": "Platform Core"}, headers=admin_headers)
    assert resp.json()["name"] == "Platform Core"

    listing = client.get(base, headers=admin_headers).json()
    assert [u["name"] for u in listing] == ["Platform Core"]

    assert client.delete(f"{base}/{unit_id}", headers=admin_headers).status_code == 200
    assert client.get(f"{base}/{unit_id}", headers=admin_headers).status_code == 404


def test_employees_can_read_but_not_write(client, make_user, auth_headers, admin_headers):
    client.post("/api/teams", json={"name": "Data"}, headers=admin_headers)
    headers = auth_headers(make_user())
    assert client.get("/api/teams", headers=headers).status_code == 200
    assert client.post("/api/teams", json={"name": "Rogue"}, headers=headers).status_code == 403


def test_unknown_member_is_404(client, admin_headers):
    team_id = client.post("/api/teams", json={"name": "Ops"}, headers=admin_headers).json()["id"]
    resp = client.post(f"/api/teams/{team_id}/members", json={"userId": 9999}, headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.parametrize(
    "base, model", [("/api/teams", Team), ("/api/business-units", BusinessUnit)]
)
def test_delete_keeps_row_but_hides_unit(client, db, make_user, admin_headers, base, model):
    member = make_user()
    unit_id = client.post(base, json={"name": "Growth"}, headers=admin_headers).json()["id"]
    client.post(f"{base}/{unit_id}/members", json={"userId": member.id}, headers=admin_headers)

    assert client.delete(f"{base}/{unit_id}", headers=admin_headers).status_code == 200

    db.expire_all()
    unit = db.get(model, unit_id)
    assert unit is not None
    assert unit.is_active is False
    assert [m.is_active for m in unit.memberships] == [False]
    assert client.get(base, headers=admin_headers).json() == []
    assert client.get(f"{base}/{unit_id}", headers=admin_headers).status_code == 404
