"""SQLAlchemy models for the Performance360 API."""

from .assessment import Quarter, SatisfactionLevel, SelfAssessment
from .attendance import MonthlyAttendance
from .feedback import ColleagueFeedback, FeedbackStatus, ManagerFeedback
from .organization import BusinessUnit, BusinessUnitMember, Team, TeamMember
from .session import UserSession
from .user import Role, User

__all__ = [
    "BusinessUnit",
    "BusinessUnitMember",
    "ColleagueFeedback",
    "FeedbackStatus",
    "ManagerFeedback",
    "MonthlyAttendance",
    "Quarter",
    "Role",
    "SatisfactionLevel",
    "SelfAssessment",
    "Team",
    "TeamMember",
    "User",
    "UserSession",
]
