from datetime import timedelta

from perf360 import database, tasks
from perf360.database import utcnow
from perf360.models import BusinessUnit, Role, Team, User, UserSession
from perf360.seed import seed_database
from perf360.worker import build_celery_app


def test_purge_expired_sessions_task(monkeypatch, session_factory, db, make_user, auth_headers):
    monkeypatch.setattr(database, "SessionLocal", session_factory)
    user = make_user()
    auth_headers(user)
    auth_headers(user)
    stale = db.query(UserSession).first()
    stale.last_activity_at = utcnow() - timedelta(days=1)
    db.commit()

    assert tasks.purge_expired_sessions() == 1
    db.expire_all()
    assert db.query(UserSession).count() == 1


def test_seed_database_is_idempotent(db):
    seed_database(db, rounds=4)
    result = seed_database(db, rounds=4)

    assert db.query(User).count() == 3
    employee = result["users"][Role.EMPLOYEE]
    assert employee.manager_id == result["users"][Role.MANAGER].id
    assert db.query(Team).one().name == "Platform"
    assert len(db.query(Team).one().memberships) == 2
    assert len(db.query(BusinessUnit).one().memberships) == 3


def test_celery_app_is_built_from_given_settings(settings):
    app = build_celery_app(
        settings.model_copy(
            update={"redis_url": "redis://queue:6379/2", "session_cleanup_frequency": 300}
        )
    )
    assert app.conf.broker_url == "redis://queue:6379/2"
    schedule = app.conf.beat_schedule["purge-expired-sessions"]
    assert schedule["task"] == "perf360.tasks.purge_expired_sessions"
    assert schedule["schedule"] == 300
