from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


class MonthlyAttendance(Base):
    """Office attendance summary for one user and month."""

    __tablename__ = "monthly_attendance"
    __table_args__ = (UniqueConstraint("user_id", "year", "month"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    working_days = Column(Integer, nullable=False)
    present_in_office = Column(Integer, nullable=False)
    leaves_availed = Column(Integer, default=0, nullable=False)
    leave_notifications_in_teams_channel = Column(Integer, default=0, nullable=False)
    attendance_percentage = Column(Float, default=0.0, nullable=False)
    weekly_compliance = Column(Boolean)
    exception_approved = Column(Boolean)
    reason_for_non_compliance = Column(Text)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User")
