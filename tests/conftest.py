import os
import uuid

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NODE_ENV", "development")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from perf360 import services
from perf360.api import create_app
from perf360.config import Settings
from perf360.database import build_engine, build_session_factory
from perf360.limits import limiter
from perf360.models import Role

PASSWORD = "Str0ng!Pass"


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        node_env="development",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
    )


@pytest.fixture
def session_factory():
    """Provide an isolated in-memory database for each test."""
    engine = build_engine("sqlite://")
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def app(settings, session_factory):
    return create_app(settings, session_factory)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def db(app, session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def reset_limiter():
    limiter.reset()
    yield


@pytest.fixture
def make_user(db):
    def _make(role=Role.EMPLOYEE, email=None, password=PASSWORD, manager=None, **kwargs):
        email = email or f"{role.value.lower()}-{uuid.uuid4().hex[:8]}@company.com"
        return services.create_user(
            db,
            email=email,
            password=password,
            first_name=kwargs.pop("first_name", role.value.title()),
            last_name=kwargs.pop("last_name", "Tester"),
            role=role,
            manager_id=manager.id if manager is not None else None,
            rounds=4,
            **kwargs,
        )

    return _make


@pytest.fixture
def auth_headers(app, db):
    """Open a session for ``user`` directly and return its bearer header."""

    def _headers(user):
        session_id = app.state.session_tracker.create(db, user.id)
        token = app.state.token_issuer.issue(user, session_id=session_id)
        return {"Authorization": f"Bearer {token}"}

    return _headers
