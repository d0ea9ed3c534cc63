"""Request and response bodies. JSON uses camelCase, Python uses snake_case."""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal

from fastapi import Path
from pydantic import BaseModel, ConfigDict, EmailStr, Field, conint, model_validator
from pydantic.alias_generators import to_camel

from .models import FeedbackStatus, Quarter, Role, SatisfactionLevel

QuarterCode = Literal["Q1", "Q2", "Q3", "Q4"]
Rating = conint(ge=1, le=5)

# ids are 64-bit integers in every supported database
MAX_ENTITY_ID = 2**63 - 1
EntityId = Annotated[int, Field(ge=1, le=MAX_ENTITY_ID)]
PathId = Annotated[int, Path(ge=1, le=MAX_ENTITY_ID)]


class APIModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class MessageResponse(APIModel):
    message: str


# --- users -----------------------------------------------------------------


class UserSummary(APIModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: Role
    position: str | None = None


class UserOut(UserSummary):
    manager_id: int | None = None
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime


class UserProfileUpdate(APIModel):
    first_name: str | None = Field(None, min_length=1)
    last_name: str | None = Field(None, min_length=1)
    position: str | None = None


class UserCreate(APIModel):
    """Request body for an administrator creating an account."""

    email: EmailStr
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    password: str
    role: Role = Role.EMPLOYEE
    position: str | None = None
    manager_id: EntityId | None = None


class RoleUpdate(APIModel):
    role: Role


class ManagerUpdate(APIModel):
    manager_id: EntityId | None = None


class PasswordReset(APIModel):
    new_password: str


class ResetLinkResponse(APIModel):
    """``token`` is only returned when the email could not be sent."""

    message: str
    token: str | None = None


# --- auth ------------------------------------------------------------------


class RegisterRequest(APIModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8)


class LoginRequest(APIModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class AuthResponse(APIModel):
    """Issued credentials plus the authenticated profile."""

    message: str
    user: UserOut
    token: str
    refresh_token: str


class RefreshRequest(APIModel):
    refresh_token: str = Field(..., min_length=1)


class TokenPair(APIModel):
    message: str
    token: str
    refresh_token: str


class ChangePasswordRequest(APIModel):
    current_password: str = Field(..., min_length=1)
    new_password: str


class ResetTokenStatus(APIModel):
    valid: bool
    email: str


class TokenPasswordReset(APIModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8)


# --- sessions --------------------------------------------------------------


class SessionOut(APIModel):
    id: str
    user_id: int
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime
    last_activity_at: datetime
    expires_at: datetime
    is_active: bool
    user: UserSummary | None = None


class Pagination(APIModel):
    page: int
    limit: int
    total: int
    total_pages: int


class SessionListResponse(APIModel):
    sessions: List[SessionOut]
    pagination: Pagination


class SessionStats(APIModel):
    total_sessions: int
    active_sessions: int
    expired_sessions: int
    sessions_today: int
    unique_users: int


class UserSessionsResponse(APIModel):
    user: UserSummary
    sessions: List[SessionOut]


# --- teams and business units ---------------------------------------------


class OrgUnitCreate(APIModel):
    name: str = Field(..., min_length=1)
    description: str | None = None


class OrgUnitUpdate(APIModel):
    name: str | None = Field(None, min_length=1)
    description: str | None = None


class MemberAdd(APIModel):
    user_id: EntityId


class MemberOut(APIModel):
    id: int
    user_id: int
    joined_at: datetime
    is_active: bool
    user: UserSummary


class OrgUnitOut(APIModel):
    id: int
    name: str
    description: str | None = None
    created_at: datetime
    members: List[MemberOut] = []


# --- feedback --------------------------------------------------------------


class ColleagueFeedbackCreate(APIModel):
    receiver_id: EntityId
    year: str = Field(..., min_length=4, max_length=4)
    quarter: QuarterCode
    rating: Rating | None = None
    is_anonymous: bool = False
    is_public: bool = False
    feedback_provider: str = Field(..., min_length=1)
    appreciation: str | None = None
    improvement: str | None = None
    would_work_again: bool | None = None


class ColleagueFeedbackOut(APIModel):
    id: int
    sender_id: int | None = None
    receiver_id: int
    year: str
    quarter: str
    rating: int | None = None
    is_anonymous: bool
    is_public: bool
    status: FeedbackStatus
    feedback_provider: str
    appreciation: str | None = None
    improvement: str | None = None
    would_work_again: bool | None = None
    created_at: datetime
    sender: UserSummary | None = None
    receiver: UserSummary


class FeedbackStatusUpdate(APIModel):
    status: FeedbackStatus


class ManagerFeedbackCreate(APIModel):
    receiver_id: EntityId
    year: str = Field(..., min_length=4, max_length=4)
    quarter: QuarterCode
    feedback_provider: str = Field(..., min_length=1)
    manager_satisfaction: str | None = None
    leadership_style: Dict[str, Any] | None = None
    career_growth: Dict[str, Any] | None = None
    coaching_caring: Dict[str, Any] | None = None
    manager_overall_rating: Rating | None = None
    appreciation: str | None = None
    improvement_areas: str | None = None


class ManagerFeedbackOut(APIModel):
    id: int
    sender_id: int
    receiver_id: int
    year: str
    quarter: str
    feedback_provider: str
    manager_satisfaction: str | None = None
    leadership_style: Dict[str, Any] | None = None
    career_growth: Dict[str, Any] | None = None
    coaching_caring: Dict[str, Any] | None = None
    manager_overall_rating: int | None = None
    appreciation: str | None = None
    improvement_areas: str | None = None
    created_at: datetime
    sender: UserSummary
    receiver: UserSummary


# --- self-assessments ------------------------------------------------------


class SelfAssessmentCreate(APIModel):
    year: int = Field(..., ge=2000, le=2100)
    quarter: Quarter | None = None
    rating: Rating | None = None
    achievements: str | None = None
    improvements: str | None = None
    satisfaction_level: SatisfactionLevel | None = None
    aspirations: str | None = None
    suggestions_for_team: str | None = None


class SelfAssessmentUpdate(APIModel):
    rating: Rating | None = None
    achievements: str | None = None
    improvements: str | None = None
    satisfaction_level: SatisfactionLevel | None = None
    aspirations: str | None = None
    suggestions_for_team: str | None = None


class SelfAssessmentOut(APIModel):
    id: int
    user_id: int
    year: int
    quarter: Quarter | None = None
    rating: int | None = None
    achievements: str | None = None
    improvements: str | None = None
    satisfaction_level: SatisfactionLevel | None = None
    aspirations: str | None = None
    suggestions_for_team: str | None = None
    created_at: datetime
    updated_at: datetime


# --- monthly attendance ----------------------------------------------------


class AttendanceFields(APIModel):
    working_days: int | None = Field(None, ge=0, le=31)
    present_in_office: int | None = Field(None, ge=0)
    leaves_availed: int | None = Field(None, ge=0)
    leave_notifications_in_teams_channel: int | None = Field(None, ge=0)
    weekly_compliance: bool | None = None
    exception_approved: bool | None = None
    reason_for_non_compliance: str | None = None


class AttendanceCreate(AttendanceFields):
    user_id: EntityId
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2020, le=2100)
    working_days: int = Field(..., ge=0, le=31)
    present_in_office: int = Field(..., ge=0)
    leaves_availed: int = Field(0, ge=0)
    leave_notifications_in_teams_channel: int = Field(0, ge=0)

    @model_validator(mode="after")
    def _within_working_days(self) -> "AttendanceCreate":
        if self.present_in_office > self.working_days:
            raise ValueError("presentInOffice must be between 0 and workingDays")
        if self.leaves_availed > self.working_days:
            raise ValueError("leavesAvailed must be between 0 and workingDays")
        return self


class AttendanceUpdate(AttendanceFields):
    pass


class AttendanceComment(APIModel):
    reason_for_non_compliance: str | None = None


class AttendanceBulkRequest(APIModel):
    records: List[AttendanceCreate] = Field(..., min_length=1)


class AttendanceBulkError(APIModel):
    user_id: int
    month: int
    year: int
    error: str


class AttendanceOut(APIModel):
    id: int
    user_id: int
    month: int
    year: int
    working_days: int
    present_in_office: int
    leaves_availed: int
    leave_notifications_in_teams_channel: int
    attendance_percentage: float
    weekly_compliance: bool | None = None
    exception_approved: bool | None = None
    reason_for_non_compliance: str | None = None
    user: UserSummary


class AttendanceBulkResponse(APIModel):
    success: int
    error_count: int
    results: List[AttendanceOut]
    errors: List[AttendanceBulkError] = []


# --- maintenance -----------------------------------------------------------


class MaintenanceUserCreate(APIModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    first_name: str = "Test"
    last_name: str = "User"
    role: Role = Role.EMPLOYEE


class EmailTarget(APIModel):
    email: EmailStr


class EmailPattern(APIModel):
    pattern: str = Field(..., min_length=3)


class ManagerAssignmentByEmail(APIModel):
    user_email: EmailStr
    manager_email: EmailStr | None = None
