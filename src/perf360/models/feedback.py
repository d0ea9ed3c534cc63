import enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


class FeedbackStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class ColleagueFeedback(Base):
    """Quarterly feedback one colleague writes about another."""

    __tablename__ = "colleague_feedback"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    receiver_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    year = Column(String, nullable=False)
    quarter = Column(String, nullable=False)
    rating = Column(Integer)
    is_anonymous = Column(Boolean, default=False, nullable=False)
    is_public = Column(Boolean, default=False, nullable=False)
    status = Column(
        Enum(FeedbackStatus, name="feedback_status"),
        default=FeedbackStatus.PENDING,
        nullable=False,
    )
    feedback_provider = Column(String, nullable=False)
    appreciation = Column(Text)
    improvement = Column(Text)
    would_work_again = Column(Boolean)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])


class ManagerFeedback(Base):
    """Quarterly feedback an employee writes about their manager."""

    __tablename__ = "manager_feedback"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    receiver_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    year = Column(String, nullable=False)
    quarter = Column(String, nullable=False)
    feedback_provider = Column(String, nullable=False)
    manager_satisfaction = Column(Text)
    leadership_style = Column(JSON)
    career_growth = Column(JSON)
    coaching_caring = Column(JSON)
    manager_overall_rating = Column(Integer)
    appreciation = Column(Text)
    improvement_areas = Column(Text)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])
