import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


def _session_id() -> str:
    return uuid.uuid4().hex


class UserSession(Base):
    """Server-side record of a login, tracking activity and expiry."""

    __tablename__ = "sessions"
    __table_args__ = (Index("ix_sessions_user_id_expires_at", "user_id", "expires_at"),)

    id = Column(String(32), primary_key=True, default=_session_id)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    ip_address = Column(String)
    user_agent = Column(String)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_activity_at = Column(DateTime, default=utcnow, nullable=False)
    # absolute ceiling; activity never moves it
    expires_at = Column(DateTime, index=True, nullable=False)

    user = relationship("User", back_populates="sessions")
