import enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


class Quarter(str, enum.Enum):
    Q1 = "Q1"
    Q2 = "Q2"
    Q3 = "Q3"
    Q4 = "Q4"
    ANNUAL = "ANNUAL"


class SatisfactionLevel(str, enum.Enum):
    VERY_SATISFIED = "VERY_SATISFIED"
    SOMEWHAT_SATISFIED = "SOMEWHAT_SATISFIED"
    NEITHER = "NEITHER"
    SOMEWHAT_DISSATISFIED = "SOMEWHAT_DISSATISFIED"
    VERY_DISSATISFIED = "VERY_DISSATISFIED"


class SelfAssessment(Base):
    """An employee's own review of a quarter (or the whole year)."""

    __tablename__ = "self_assessments"
    __table_args__ = (UniqueConstraint("user_id", "year", "quarter"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    year = Column(Integer, nullable=False)
    quarter = Column(Enum(Quarter, name="quarter"))
    rating = Column(Integer)
    achievements = Column(Text)
    improvements = Column(Text)
    satisfaction_level = Column(Enum(SatisfactionLevel, name="satisfaction_level"))
    aspirations = Column(Text)
    suggestions_for_team = Column(Text)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User")
