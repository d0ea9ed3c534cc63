"""Service layer: persistence and scoping rules behind the HTTP routes."""

import logging
import math
import secrets
from collections import deque
from datetime import datetime, timedelta
from typing import Dict, List, Tuple, Type

from fastapi import HTTPException, status
from prometheus_client import Counter
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from .database import utcnow
from .errors import ManagerAssignmentError
from .logging_utils import redact_email
from .models import (
    BusinessUnit,
    BusinessUnitMember,
    ColleagueFeedback,
    FeedbackStatus,
    ManagerFeedback,
    MonthlyAttendance,
    Role,
    SelfAssessment,
    Team,
    TeamMember,
    User,
    UserSession,
)
from .passwords import hash_password, validate_password_strength, verify_password
from .sessions import SessionTracker
from . import schemas

logger = logging.getLogger(__name__)

FEEDBACK_COUNTER = Counter(
    "feedback_submitted_total", "Feedback forms submitted", ["kind"]
)

GENERIC_REGISTRATION_ERROR = (
    "Unable to complete registration. Please check your information and try again."
)
ACCESS_DENIED = "Access denied"
INVALID_RESET_TOKEN = "Invalid or expired reset token"


def _not_found(what: str = "Resource") -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _forbidden(message: str = ACCESS_DENIED) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)


def _conflict(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=message)


# --- reporting tree --------------------------------------------------------


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise _not_found("User")
    return user


def get_direct_reports(db: Session, manager_id: int) -> List[User]:
    return (
        db.query(User)
        .filter(User.manager_id == manager_id, User.is_active.is_(True))
        .order_by(User.first_name, User.last_name)
        .all()
    )


def get_indirect_reports(db: Session, manager_id: int) -> List[User]:
    """Reports two or more levels below ``manager_id``, breadth first."""
    seen = {manager_id}
    frontier = deque(u.id for u in get_direct_reports(db, manager_id))
    seen.update(frontier)
    indirect: List[User] = []
    while frontier:
        current = frontier.popleft()
        for report in get_direct_reports(db, current):
            if report.id in seen:
                continue
            seen.add(report.id)
            indirect.append(report)
            frontier.append(report.id)
    return indirect


def is_report_of(db: Session, manager_id: int, employee_id: int) -> bool:
    """True when ``employee_id`` reports to ``manager_id`` directly or indirectly."""
    visited = set()
    current = db.get(User, employee_id)
    while current is not None and current.is_active and current.manager_id is not None:
        if current.manager_id == manager_id:
            return True
        if current.id in visited:
            return False
        visited.add(current.id)
        current = db.get(User, current.manager_id)
    return False


def can_access_user(db: Session, viewer: User, target_id: int) -> bool:
    if viewer.id == target_id or viewer.role == Role.ADMIN:
        return True
    if viewer.role == Role.MANAGER:
        return is_report_of(db, viewer.id, target_id)
    return False


def ensure_user_access(db: Session, viewer: User, target_id: int) -> None:
    if not can_access_user(db, viewer, target_id):
        logger.warning("user %s denied access to user %s", viewer.id, target_id)
        raise _forbidden()


def check_manager_assignment(db: Session, user: User, manager: User) -> None:
    """Raise :class:`ManagerAssignmentError` if ``manager`` cannot manage ``user``."""
    if manager.id == user.id:
        raise ManagerAssignmentError("User cannot be their own manager")
    if not manager.is_active:
        raise ManagerAssignmentError("Manager is inactive")
    if not manager.role.satisfies(Role.MANAGER):
        raise ManagerAssignmentError("Selected user is not a manager or admin")

    visited = set()
    current = manager
    while current is not None and current.manager_id is not None:
        if current.manager_id == user.id:
            raise ManagerAssignmentError("Assignment would create a reporting cycle")
        if current.id in visited:
            # pre-existing cycle above the manager
            raise ManagerAssignmentError("Assignment would create a reporting cycle")
        visited.add(current.id)
        current = db.get(User, current.manager_id)


def assign_manager(db: Session, user: User, manager_id: int | None) -> User:
    if manager_id is None:
        user.manager_id = None
    else:
        manager = db.get(User, manager_id)
        if manager is None:
            raise _bad_request("Manager not found")
        try:
            check_manager_assignment(db, user, manager)
        except ManagerAssignmentError as exc:
            raise _bad_request(str(exc)) from exc
        user.manager_id = manager.id
    db.commit()
    db.refresh(user)
    logger.info("user %s manager set to %s", user.id, manager_id)
    return user


# --- users -----------------------------------------------------------------


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def require_strong_password(password: str) -> None:
    problem = validate_password_strength(password)
    if problem:
        raise _bad_request(problem)


def create_user(
    db: Session,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: Role = Role.EMPLOYEE,
    position: str | None = None,
    manager_id: int | None = None,
    rounds: int = 12,
    enforce_policy: bool = True,
) -> User:
    """Persist a new user, rejecting duplicates and weak passwords."""
    if enforce_policy:
        require_strong_password(password)
    if get_user_by_email(db, email) is not None:
        logger.warning("registration attempt with existing email %s", redact_email(email))
        raise _bad_request(GENERIC_REGISTRATION_ERROR)

    user = User(
        email=normalize_email(email),
        password_hash=hash_password(password, rounds=rounds),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        role=role,
        position=position,
    )
    db.add(user)
    db.flush()
    if manager_id is not None:
        assign_manager(db, user, manager_id)
    db.commit()
    db.refresh(user)
    logger.info("created user id=%s role=%s", user.id, user.role.value)
    return user


def authenticate(db: Session, email: str, password: str) -> User | None:
    user = get_user_by_email(db, email)
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def list_users(db: Session, role: Role | None = None, search: str | None = None) -> List[User]:
    query = db.query(User).filter(User.is_active.is_(True))
    if role is not None:
        query = query.filter(User.role == role)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
            )
        )
    return query.order_by(User.first_name, User.last_name).all()


def update_profile(db: Session, user: User, payload: schemas.UserProfileUpdate) -> User:
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field in ("first_name", "last_name") and value is None:
            continue
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


def set_role(db: Session, user: User, role: Role) -> User:
    if user.role.satisfies(Role.MANAGER) and not role.satisfies(Role.MANAGER):
        if get_direct_reports(db, user.id):
            raise _bad_request("Reassign direct reports before demoting this manager")
    user.role = role
    db.commit()
    db.refresh(user)
    logger.info("user %s role set to %s", user.id, role.value)
    return user


def change_password(
    db: Session,
    tracker: SessionTracker,
    user: User,
    current_password: str,
    new_password: str,
    keep_session: str | None,
    rounds: int = 12,
) -> None:
    if not verify_password(current_password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid current password"
        )
    require_strong_password(new_password)
    if verify_password(new_password, user.password_hash):
        raise _bad_request("New password must be different from the current password")
    user.password_hash = hash_password(new_password, rounds=rounds)
    db.commit()
    tracker.revoke_user(db, user.id, keep=keep_session)
    logger.info("user %s changed password", user.id)


def reset_password(
    db: Session, tracker: SessionTracker, user: User, new_password: str, rounds: int = 12
) -> None:
    require_strong_password(new_password)
    user.password_hash = hash_password(new_password, rounds=rounds)
    user.password_reset_token = None
    user.password_reset_expires = None
    db.commit()
    tracker.revoke_user(db, user.id)
    logger.info("password reset for user %s", user.id)


def issue_reset_token(db: Session, user: User, lifetime: timedelta) -> str:
    """Store a fresh single-use reset token on ``user`` and return it."""
    if not user.is_active:
        raise _bad_request("Cannot send reset link to inactive user")
    token = secrets.token_hex(32)
    user.password_reset_token = token
    user.password_reset_expires = utcnow() + lifetime
    db.commit()
    logger.info("reset token issued for user %s", user.id)
    return token


def get_user_by_reset_token(db: Session, token: str) -> User:
    user = (
        db.query(User)
        .filter(User.password_reset_token == token, User.password_reset_expires > utcnow())
        .first()
    )
    if user is None:
        raise _bad_request(INVALID_RESET_TOKEN)
    if not user.is_active:
        raise _bad_request("User account is inactive")
    return user


def reset_password_with_token(
    db: Session, tracker: SessionTracker, token: str, new_password: str, rounds: int = 12
) -> User:
    user = get_user_by_reset_token(db, token)
    reset_password(db, tracker, user, new_password, rounds=rounds)
    return user


def deactivate_user(db: Session, tracker: SessionTracker, user: User, actor: User) -> None:
    if user.id == actor.id:
        raise _bad_request("You cannot deactivate your own account")
    user.is_active = False
    for report in db.query(User).filter(User.manager_id == user.id).all():
        report.manager_id = None
    db.commit()
    tracker.revoke_user(db, user.id)
    logger.info("user %s deactivated by %s", user.id, actor.id)


def purge_user(db: Session, user: User) -> None:
    """Hard-delete a user and everything that references them."""
    db.query(User).filter(User.manager_id == user.id).update(
        {User.manager_id: None}, synchronize_session=False
    )
    for model, columns in (
        (ColleagueFeedback, ("sender_id", "receiver_id")),
        (ManagerFeedback, ("sender_id", "receiver_id")),
        (SelfAssessment, ("user_id",)),
        (MonthlyAttendance, ("user_id",)),
        (TeamMember, ("user_id",)),
        (BusinessUnitMember, ("user_id",)),
        (UserSession, ("user_id",)),
    ):
        criteria = [getattr(model, column) == user.id for column in columns]
        db.query(model).filter(or_(*criteria)).delete(synchronize_session=False)
    db.delete(user)
    db.commit()
    logger.info("purged user %s", user.id)


# --- sessions --------------------------------------------------------------


def session_to_out(
    record: UserSession, tracker: SessionTracker, now: datetime, with_user: bool = True
) -> schemas.SessionOut:
    return schemas.SessionOut(
        id=record.id,
        user_id=record.user_id,
        ip_address=record.ip_address,
        user_agent=record.user_agent,
        created_at=record.created_at,
        last_activity_at=record.last_activity_at,
        expires_at=record.expires_at,
        is_active=not tracker.is_expired(record, now),
        user=schemas.UserSummary.model_validate(record.user) if with_user else None,
    )


def list_sessions(
    db: Session,
    tracker: SessionTracker,
    page: int = 1,
    limit: int = 50,
    user_id: int | None = None,
    active: bool | None = None,
) -> schemas.SessionListResponse:
    now = tracker.now()
    query = db.query(UserSession)
    if user_id is not None:
        query = query.filter(UserSession.user_id == user_id)
    if active is True:
        query = query.filter(~tracker.expired_filter(now))
    elif active is False:
        query = query.filter(tracker.expired_filter(now))

    total = query.count()
    records = (
        query.order_by(UserSession.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return schemas.SessionListResponse(
        sessions=[session_to_out(r, tracker, now) for r in records],
        pagination=schemas.Pagination(
            page=page, limit=limit, total=total, total_pages=math.ceil(total / limit)
        ),
    )


def session_stats(db: Session, tracker: SessionTracker) -> schemas.SessionStats:
    now = tracker.now()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    total = db.query(UserSession).count()
    expired = db.query(UserSession).filter(tracker.expired_filter(now)).count()
    today = db.query(UserSession).filter(UserSession.created_at >= start_of_day).count()
    unique_users = db.query(func.count(func.distinct(UserSession.user_id))).scalar() or 0
    return schemas.SessionStats(
        total_sessions=total,
        active_sessions=total - expired,
        expired_sessions=expired,
        sessions_today=today,
        unique_users=unique_users,
    )


def user_sessions(
    db: Session, tracker: SessionTracker, user_id: int
) -> schemas.UserSessionsResponse:
    user = get_user_or_404(db, user_id)
    now = tracker.now()
    records = (
        db.query(UserSession)
        .filter(UserSession.user_id == user_id)
        .order_by(UserSession.created_at.desc())
        .all()
    )
    return schemas.UserSessionsResponse(
        user=schemas.UserSummary.model_validate(user),
        sessions=[session_to_out(r, tracker, now, with_user=False) for r in records],
    )


# --- teams and business units ---------------------------------------------

OrgUnit = Team | BusinessUnit

_MEMBERSHIP_MODELS: Dict[type, Tuple[type, str]] = {
    Team: (TeamMember, "team_id"),
    BusinessUnit: (BusinessUnitMember, "business_unit_id"),
}


def org_unit_to_out(unit: OrgUnit) -> schemas.OrgUnitOut:
    members = [
        schemas.MemberOut.model_validate(m)
        for m in unit.memberships
        if m.is_active and m.user.is_active
    ]
    return schemas.OrgUnitOut(
        id=unit.id,
        name=unit.name,
        description=unit.description,
        created_at=unit.created_at,
        members=members,
    )


def list_org_units(db: Session, model: Type[OrgUnit]) -> List[OrgUnit]:
    return db.query(model).filter(model.is_active.is_(True)).order_by(model.name).all()


def get_org_unit(db: Session, model: Type[OrgUnit], unit_id: int) -> OrgUnit:
    unit = db.get(model, unit_id)
    if unit is None or not unit.is_active:
        raise _not_found()
    return unit


def _ensure_unique_name(
    db: Session, model: Type[OrgUnit], name: str, exclude_id: int | None = None
) -> None:
    query = db.query(model).filter(func.lower(model.name) == name.strip().lower())
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first() is not None:
        raise _conflict(f"A {model.__tablename__[:-1].replace('_', ' ')} with this name already exists")


def create_org_unit(
    db: Session, model: Type[OrgUnit], payload: schemas.OrgUnitCreate
) -> OrgUnit:
    _ensure_unique_name(db, model, payload.name)
    unit = model(name=payload.name.strip(), description=payload.description)
    db.add(unit)
    db.commit()
    db.refresh(unit)
    logger.info("created %s id=%s", model.__tablename__, unit.id)
    return unit


def update_org_unit(
    db: Session, unit: OrgUnit, payload: schemas.OrgUnitUpdate
) -> OrgUnit:
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name"):
        _ensure_unique_name(db, type(unit), changes["name"], exclude_id=unit.id)
        unit.name = changes["name"].strip()
    if "description" in changes:
        unit.description = changes["description"]
    db.commit()
    db.refresh(unit)
    return unit


def delete_org_unit(db: Session, unit: OrgUnit) -> None:
    """Soft-delete: the row and its memberships stay, marked inactive."""
    unit.is_active = False
    for membership in unit.memberships:
        membership.is_active = False
    db.commit()
    logger.info("deactivated %s id=%s", unit.__tablename__, unit.id)


def add_member(db: Session, unit: OrgUnit, user_id: int) -> OrgUnit:
    user = get_user_or_404(db, user_id)
    if not user.is_active:
        raise _bad_request("Cannot add an inactive user")
    member_model, fk = _MEMBERSHIP_MODELS[type(unit)]
    membership = (
        db.query(member_model)
        .filter(getattr(member_model, fk) == unit.id, member_model.user_id == user.id)
        .first()
    )
    if membership is not None and membership.is_active:
        raise _bad_request("User is already a member")
    if membership is None:
        db.add(member_model(**{fk: unit.id, "user_id": user.id}))
    else:
        membership.is_active = True
        membership.joined_at = utcnow()
    db.commit()
    db.refresh(unit)
    return unit


def remove_member(db: Session, unit: OrgUnit, user_id: int) -> OrgUnit:
    member_model, fk = _MEMBERSHIP_MODELS[type(unit)]
    membership = (
        db.query(member_model)
        .filter(
            getattr(member_model, fk) == unit.id,
            member_model.user_id == user_id,
            member_model.is_active.is_(True),
        )
        .first()
    )
    if membership is None:
        raise _not_found("Membership")
    membership.is_active = False
    db.commit()
    db.refresh(unit)
    return unit


# --- colleague feedback ----------------------------------------------------


def _live_receiver(db: Session, sender: User, receiver_id: int) -> User:
    receiver = db.get(User, receiver_id)
    if receiver is None:
        raise _not_found("Receiver")
    if not receiver.is_active:
        raise _bad_request("Cannot send feedback to inactive user")
    if receiver.id == sender.id:
        raise _bad_request("You cannot send feedback to yourself")
    return receiver


def colleague_feedback_to_out(
    feedback: ColleagueFeedback, viewer: User, reveal_sender: bool = False
) -> schemas.ColleagueFeedbackOut:
    """Serialize feedback, hiding an anonymous sender from all but admins and the sender.

    ``reveal_sender`` is for listings keyed by the sender, where the sender
    is already known to the viewer.
    """
    out = schemas.ColleagueFeedbackOut.model_validate(feedback)
    hide_sender = (
        feedback.is_anonymous
        and not reveal_sender
        and viewer.role != Role.ADMIN
        and viewer.id != feedback.sender_id
    )
    if hide_sender:
        out = out.model_copy(
            update={"sender_id": None, "sender": None, "feedback_provider": "Anonymous"}
        )
    return out


def create_colleague_feedback(
    db: Session, sender: User, payload: schemas.ColleagueFeedbackCreate
) -> ColleagueFeedback:
    _live_receiver(db, sender, payload.receiver_id)
    feedback = ColleagueFeedback(sender_id=sender.id, **payload.model_dump())
    db.add(feedback)
    db.commit()
    db.refresh(feedback)
    FEEDBACK_COUNTER.labels(kind="colleague").inc()
    logger.info(
        "colleague feedback %s from %s to %s", feedback.id, sender.id, payload.receiver_id
    )
    return feedback


def _feedback_query(db: Session, model, column: str, user_id: int):
    return (
        db.query(model)
        .filter(getattr(model, column) == user_id)
        .order_by(model.created_at.desc(), model.id.desc())
        .all()
    )


def colleague_feedback_received(db: Session, user_id: int) -> List[ColleagueFeedback]:
    return _feedback_query(db, ColleagueFeedback, "receiver_id", user_id)


def colleague_feedback_sent(db: Session, user_id: int) -> List[ColleagueFeedback]:
    return _feedback_query(db, ColleagueFeedback, "sender_id", user_id)


def update_feedback_status(
    db: Session, viewer: User, feedback_id: int, new_status: FeedbackStatus
) -> ColleagueFeedback:
    feedback = db.get(ColleagueFeedback, feedback_id)
    if feedback is None:
        raise _not_found("Feedback")
    if viewer.id not in (feedback.receiver_id, feedback.sender_id):
        raise _forbidden("Not authorized")
    feedback.status = new_status
    db.commit()
    db.refresh(feedback)
    return feedback


# --- manager feedback ------------------------------------------------------


def create_manager_feedback(
    db: Session, sender: User, payload: schemas.ManagerFeedbackCreate
) -> ManagerFeedback:
    receiver = _live_receiver(db, sender, payload.receiver_id)
    if not receiver.role.satisfies(Role.MANAGER):
        raise _bad_request("Feedback receiver is not a manager")
    feedback = ManagerFeedback(sender_id=sender.id, **payload.model_dump())
    db.add(feedback)
    db.commit()
    db.refresh(feedback)
    FEEDBACK_COUNTER.labels(kind="manager").inc()
    logger.info("manager feedback %s from %s to %s", feedback.id, sender.id, receiver.id)
    return feedback


def manager_feedback_received(db: Session, user_id: int) -> List[ManagerFeedback]:
    return _feedback_query(db, ManagerFeedback, "receiver_id", user_id)


def manager_feedback_sent(db: Session, user_id: int) -> List[ManagerFeedback]:
    return _feedback_query(db, ManagerFeedback, "sender_id", user_id)


# --- self-assessments ------------------------------------------------------


def list_assessments(db: Session, user_id: int) -> List[SelfAssessment]:
    return (
        db.query(SelfAssessment)
        .filter(SelfAssessment.user_id == user_id)
        .order_by(SelfAssessment.year.desc(), SelfAssessment.quarter.desc())
        .all()
    )


def get_assessment(db: Session, viewer: User, assessment_id: int) -> SelfAssessment:
    assessment = db.get(SelfAssessment, assessment_id)
    if assessment is None:
        raise _not_found("Assessment")
    ensure_user_access(db, viewer, assessment.user_id)
    return assessment


def create_assessment(
    db: Session, user: User, payload: schemas.SelfAssessmentCreate
) -> SelfAssessment:
    existing = (
        db.query(SelfAssessment)
        .filter(
            SelfAssessment.user_id == user.id,
            SelfAssessment.year == payload.year,
            SelfAssessment.quarter == payload.quarter,
        )
        .first()
    )
    if existing is not None:
        raise _conflict("A self-assessment already exists for this period")
    assessment = SelfAssessment(user_id=user.id, **payload.model_dump())
    db.add(assessment)
    db.commit()
    db.refresh(assessment)
    logger.info("self-assessment %s created by %s", assessment.id, user.id)
    return assessment


def update_assessment(
    db: Session, viewer: User, assessment_id: int, payload: schemas.SelfAssessmentUpdate
) -> SelfAssessment:
    assessment = db.get(SelfAssessment, assessment_id)
    if assessment is None:
        raise _not_found("Assessment")
    if assessment.user_id != viewer.id:
        raise _forbidden("Only the author can edit a self-assessment")
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(assessment, field, value)
    db.commit()
    db.refresh(assessment)
    return assessment


def delete_assessment(db: Session, viewer: User, assessment_id: int) -> None:
    assessment = db.get(SelfAssessment, assessment_id)
    if assessment is None:
        raise _not_found("Assessment")
    if assessment.user_id != viewer.id and viewer.role != Role.ADMIN:
        raise _forbidden("Only the author or an admin can delete a self-assessment")
    db.delete(assessment)
    db.commit()


# --- monthly attendance ----------------------------------------------------


def attendance_percentage(working_days: int, present: int, leaves: int) -> float:
    effective = working_days - leaves
    if effective <= 0:
        return 0.0
    return present / effective * 100


def _validate_attendance(record: MonthlyAttendance) -> None:
    if not 0 <= record.present_in_office <= record.working_days:
        raise _bad_request("presentInOffice must be between 0 and workingDays")
    if not 0 <= record.leaves_availed <= record.working_days:
        raise _bad_request("leavesAvailed must be between 0 and workingDays")


def get_attendance_or_404(db: Session, record_id: int) -> MonthlyAttendance:
    record = db.get(MonthlyAttendance, record_id)
    if record is None:
        raise _not_found("Monthly attendance record")
    return record


def list_attendance(
    db: Session,
    user_id: int | None = None,
    year: int | None = None,
    month: int | None = None,
) -> List[MonthlyAttendance]:
    query = db.query(MonthlyAttendance)
    if user_id is not None:
        query = query.filter(MonthlyAttendance.user_id == user_id)
    if year is not None:
        query = query.filter(MonthlyAttendance.year == year)
    if month is not None:
        query = query.filter(MonthlyAttendance.month == month)
    return query.order_by(
        MonthlyAttendance.year.desc(), MonthlyAttendance.month.desc()
    ).all()


def create_attendance(db: Session, payload: schemas.AttendanceCreate) -> MonthlyAttendance:
    get_user_or_404(db, payload.user_id)
    duplicate = (
        db.query(MonthlyAttendance)
        .filter(
            MonthlyAttendance.user_id == payload.user_id,
            MonthlyAttendance.year == payload.year,
            MonthlyAttendance.month == payload.month,
        )
        .first()
    )
    if duplicate is not None:
        raise _conflict(
            "A monthly attendance record already exists for this user, month, and year"
        )
    record = MonthlyAttendance(**payload.model_dump())
    record.attendance_percentage = attendance_percentage(
        record.working_days, record.present_in_office, record.leaves_availed
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info(
        "attendance %s/%s recorded for user %s", record.month, record.year, record.user_id
    )
    return record


def bulk_upsert_attendance(
    db: Session, records: List[schemas.AttendanceCreate]
) -> schemas.AttendanceBulkResponse:
    """Create or overwrite one record per (user, year, month).

    Entries naming an unknown user are reported back and skipped; the rest
    are committed together.
    """
    saved: List[MonthlyAttendance] = []
    errors: List[schemas.AttendanceBulkError] = []
    for payload in records:
        if db.get(User, payload.user_id) is None:
            errors.append(
                schemas.AttendanceBulkError(
                    user_id=payload.user_id,
                    month=payload.month,
                    year=payload.year,
                    error="User not found",
                )
            )
            continue
        record = (
            db.query(MonthlyAttendance)
            .filter(
                MonthlyAttendance.user_id == payload.user_id,
                MonthlyAttendance.year == payload.year,
                MonthlyAttendance.month == payload.month,
            )
            .first()
        )
        if record is None:
            record = MonthlyAttendance()
            db.add(record)
        for field, value in payload.model_dump().items():
            setattr(record, field, value)
        record.attendance_percentage = attendance_percentage(
            record.working_days, record.present_in_office, record.leaves_availed
        )
        # later entries for the same period must find this one
        db.flush()
        saved.append(record)

    db.commit()
    for record in saved:
        db.refresh(record)
    logger.info("bulk attendance: %d saved, %d errors", len(saved), len(errors))
    return schemas.AttendanceBulkResponse(
        success=len(saved),
        error_count=len(errors),
        results=[schemas.AttendanceOut.model_validate(r) for r in saved],
        errors=errors,
    )


def update_attendance(
    db: Session, record: MonthlyAttendance, payload: schemas.AttendanceUpdate
) -> MonthlyAttendance:
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field in (
            "working_days",
            "present_in_office",
            "leaves_availed",
            "leave_notifications_in_teams_channel",
        ):
            continue
        setattr(record, field, value)
    _validate_attendance(record)
    record.attendance_percentage = attendance_percentage(
        record.working_days, record.present_in_office, record.leaves_availed
    )
    db.commit()
    db.refresh(record)
    return record


def delete_attendance(db: Session, record: MonthlyAttendance) -> None:
    db.delete(record)
    db.commit()


def set_attendance_comment(
    db: Session, viewer: User, record: MonthlyAttendance, comment: str | None
) -> MonthlyAttendance:
    if not viewer.role.satisfies(Role.MANAGER):
        raise _forbidden("Access denied. Only managers can add or edit comments.")
    ensure_user_access(db, viewer, record.user_id)
    record.reason_for_non_compliance = comment or None
    db.commit()
    db.refresh(record)
    logger.info("attendance %s comment updated by %s", record.id, viewer.id)
    return record
