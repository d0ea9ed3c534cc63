from perf360.models import ColleagueFeedback, Role, User, UserSession


def test_create_user_replaces_existing(client, db):
    body = {"email": "e2e.user@company.com", "password": "simple", "role": "MANAGER"}
    first = client.post("/api/test-cleanup/create-user", json=body)
    assert first.status_code == 201
    assert first.json()["role"] == "MANAGER"

    second = client.post("/api/test-cleanup/create-user", json=body)
    assert second.status_code == 201
    db.expire_all()
    assert db.query(User).filter(User.email == "e2e.user@company.com").count() == 1


def test_delete_user_and_dependents(client, db, make_user, auth_headers):
    target = make_user(Role.MANAGER, email="doomed@company.com")
    peer = make_user()
    report = make_user(manager=target)
    auth_headers(target)
    db.add(
        ColleagueFeedback(
            sender_id=peer.id,
            receiver_id=target.id,
            year="2026",
            quarter="Q1",
            feedback_provider="Peer",
        )
    )
    db.commit()

    resp = client.request("DELETE", "/api/test-cleanup/delete", json={"email": "doomed@company.com"})
    assert resp.status_code == 200
    db.expire_all()
    assert db.query(User).filter(User.email == "doomed@company.com").count() == 0
    assert db.query(ColleagueFeedback).count() == 0
    assert db.query(UserSession).count() == 0
    assert db.get(User, report.id).manager_id is None

    resp = client.request("DELETE", "/api/test-cleanup/delete", json={"email": "doomed@company.com"})
    assert resp.status_code == 404


def test_delete_pattern(client, db, make_user):
    make_user(email="e2e-one@company.com")
    make_user(email="e2e-two@company.com")
    make_user(email="keeper@company.com")
    resp = client.request("DELETE", "/api/test-cleanup/delete-pattern", json={"pattern": "e2e-"})
    assert resp.json() == {"message": "Deleted 2 users"}
    db.expire_all()
    assert [u.email for u in db.query(User).all()] == ["keeper@company.com"]

    short = client.request("DELETE", "/api/test-cleanup/delete-pattern", json={"pattern": "e"})
    assert short.status_code == 400


def test_assign_manager_by_email(client, make_user):
    manager = make_user(Role.MANAGER, email="boss@company.com")
    make_user(email="worker@company.com")
    resp = client.put(
        "/api/test-cleanup/assign-manager",
        json={"userEmail": "worker@company.com", "managerEmail": "boss@company.com"},
    )
    assert resp.status_code == 200
    assert resp.json()["managerId"] == manager.id

    resp = client.put(
        "/api/test-cleanup/assign-manager",
        json={"userEmail": "boss@company.com", "managerEmail": "worker@company.com"},
    )
    assert resp.status_code == 400

    resp = client.put("/api/test-cleanup/assign-manager", json={"userEmail": "worker@company.com"})
    assert resp.json()["managerId"] is None
