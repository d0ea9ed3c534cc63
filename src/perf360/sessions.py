"""Server-side session tracking: activity recency, idle and absolute expiry.

Expiry policy: ``expires_at`` is fixed at creation and is a hard ceiling.
The idle timeout can only end a session earlier, so a session is expired once
``now - last_activity_at`` exceeds the idle timeout or once ``now`` reaches
``expires_at``, whichever comes first. Activity never extends the ceiling.
"""

import enum
import logging
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .config import Settings
from .database import utcnow
from .errors import SessionNotFound
from .models.session import UserSession

logger = logging.getLogger(__name__)


class SessionStatus(str, enum.Enum):
    VALID = "valid"
    EXPIRED = "expired"


class SessionTracker:
    """Create, touch, check and revoke persisted sessions."""

    def __init__(
        self,
        idle_timeout: timedelta = timedelta(hours=2),
        absolute_timeout: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.idle_timeout = idle_timeout
        self.absolute_timeout = absolute_timeout
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionTracker":
        return cls(
            idle_timeout=timedelta(minutes=settings.session_idle_timeout_minutes),
            absolute_timeout=timedelta(minutes=settings.session_absolute_timeout_minutes),
        )

    def now(self) -> datetime:
        return self._clock()

    def get(self, db: Session, session_id: str | None) -> UserSession:
        record = db.get(UserSession, session_id) if session_id else None
        if record is None:
            raise SessionNotFound(session_id)
        return record

    def is_expired(self, record: UserSession, now: datetime | None = None) -> bool:
        now = now or self.now()
        if now >= record.expires_at:
            return True
        return now - record.last_activity_at > self.idle_timeout

    def create(
        self,
        db: Session,
        user_id: int,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> str:
        now = self.now()
        record = UserSession(
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
            created_at=now,
            last_activity_at=now,
            expires_at=now + self.absolute_timeout,
        )
        db.add(record)
        db.commit()
        logger.info("created session %s for user %s", record.id, user_id)
        return record.id

    def touch(self, db: Session, session_id: str) -> None:
        record = self.get(db, session_id)
        record.last_activity_at = self.now()
        db.commit()

    def check_timeout(self, db: Session, session_id: str) -> SessionStatus:
        record = self.get(db, session_id)
        if self.is_expired(record):
            return SessionStatus.EXPIRED
        return SessionStatus.VALID

    def revoke(self, db: Session, session_id: str) -> None:
        record = self.get(db, session_id)
        db.delete(record)
        db.commit()
        logger.info("revoked session %s", session_id)

    def revoke_user(
        self, db: Session, user_id: int, keep: str | None = None
    ) -> int:
        """Delete every session of ``user_id`` except ``keep``."""
        query = db.query(UserSession).filter(UserSession.user_id == user_id)
        if keep is not None:
            query = query.filter(UserSession.id != keep)
        count = query.delete(synchronize_session=False)
        db.commit()
        if count:
            logger.info("revoked %d sessions for user %s", count, user_id)
        return count

    def expired_filter(self, now: datetime | None = None):
        """SQL criterion matching idle- or absolute-expired rows."""
        now = now or self.now()
        return or_(
            UserSession.expires_at <= now,
            UserSession.last_activity_at < now - self.idle_timeout,
        )

    def purge_expired(self, db: Session) -> int:
        count = (
            db.query(UserSession)
            .filter(self.expired_filter())
            .delete(synchronize_session=False)
        )
        db.commit()
        logger.info("purged %d expired sessions", count)
        return count
