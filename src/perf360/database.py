"""Database setup shared by the API, the worker and the seed script."""

from datetime import datetime

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import get_settings

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every DateTime column."""
    return datetime.utcnow()


def build_engine(database_url: str) -> Engine:
    """Create an engine, keeping in-memory SQLite on a single shared connection."""
    kwargs = {"future": True}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def build_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, future=True)


# process-wide defaults, read only by entry points
engine = build_engine(get_settings().database_url)
SessionLocal = build_session_factory(engine)


def init_db(bind: Engine) -> None:
    """Create database tables if they do not exist."""
    # model modules register their tables on Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind)
