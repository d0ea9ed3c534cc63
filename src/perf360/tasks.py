"""Celery tasks for session housekeeping."""

import logging

from prometheus_client import Counter
from sqlalchemy.exc import SQLAlchemyError

from . import database
from .sessions import SessionTracker
from .worker import celery_app, settings

logger = logging.getLogger(__name__)

# Counter to track how many expired sessions are deleted
SESSIONS_PURGED_COUNTER = Counter(
    "sessions_purged_total", "Expired sessions deleted by the cleanup task"
)


@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def purge_expired_sessions(self) -> int:
    """Delete sessions past their idle or absolute timeout.

    Returns the number of rows deleted.
    """
    tracker = SessionTracker.from_settings(settings)
    session = database.SessionLocal()
    try:
        purged = tracker.purge_expired(session)
        SESSIONS_PURGED_COUNTER.inc(purged)
        return purged
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Failed to purge expired sessions")
        raise self.retry(exc=exc)
    finally:
        session.close()
