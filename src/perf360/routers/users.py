"""User profiles, the reporting tree and admin account management."""

import logging
from datetime import timedelta
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import mailer, services
from ..auth import (
    AuthContext,
    get_current_user,
    get_db,
    get_session_tracker,
    get_settings,
    require_admin,
    require_manager,
)
from ..config import Settings
from ..models import Role
from ..schemas import (
    ManagerUpdate,
    MessageResponse,
    PasswordReset,
    PathId,
    ResetLinkResponse,
    RoleUpdate,
    UserCreate,
    UserOut,
    UserProfileUpdate,
    UserSummary,
)
from ..sessions import SessionTracker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me", response_model=UserOut)
def get_me(ctx: AuthContext = Depends(get_current_user)):
    return ctx.user


@router.put("/me", response_model=UserOut)
def update_me(
    payload: UserProfileUpdate,
    ctx: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return services.update_profile(db, ctx.user, payload)


@router.get("", response_model=List[UserSummary])
def list_users(
    role: Role | None = Query(None),
    search: str | None = Query(None),
    ctx: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return services.list_users(db, role=role, search=search)


@router.get("/direct-reports", response_model=List[UserOut])
def direct_reports(
    ctx: AuthContext = Depends(require_manager), db: Session = Depends(get_db)
):
    return services.get_direct_reports(db, ctx.user_id)


@router.get("/indirect-reports", response_model=List[UserOut])
def indirect_reports(
    ctx: AuthContext = Depends(require_manager), db: Session = Depends(get_db)
):
    return services.get_indirect_reports(db, ctx.user_id)


@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: PathId,
    ctx: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    services.ensure_user_access(db, ctx.user, user_id)
    return services.get_user_or_404(db, user_id)


@router.post("", response_model=UserOut, status_code=201)
def create_user(
    payload: UserCreate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return services.create_user(
        db,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.role,
        position=payload.position,
        manager_id=payload.manager_id,
        rounds=settings.bcrypt_rounds,
    )


@router.patch("/{user_id}/role", response_model=UserOut)
def update_role(
    user_id: PathId,
    payload: RoleUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = services.get_user_or_404(db, user_id)
    return services.set_role(db, user, payload.role)


@router.patch("/{user_id}/manager", response_model=UserOut)
def update_manager(
    user_id: PathId,
    payload: ManagerUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = services.get_user_or_404(db, user_id)
    return services.assign_manager(db, user, payload.manager_id)


@router.patch("/{user_id}/reset-password", response_model=MessageResponse)
def reset_password(
    user_id: PathId,
    payload: PasswordReset,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    tracker: SessionTracker = Depends(get_session_tracker),
):
    user = services.get_user_or_404(db, user_id)
    services.reset_password(
        db, tracker, user, payload.new_password, rounds=settings.bcrypt_rounds
    )
    return MessageResponse(message="Password reset successfully")


@router.delete("/{user_id}", response_model=MessageResponse)
def deactivate_user(
    user_id: PathId,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    tracker: SessionTracker = Depends(get_session_tracker),
):
    user = services.get_user_or_404(db, user_id)
    services.deactivate_user(db, tracker, user, ctx.user)
    return MessageResponse(message="User deactivated successfully")


@router.post(
    "/{user_id}/send-reset-link",
    response_model=ResetLinkResponse,
    response_model_exclude_none=True,
)
def send_reset_link(
    user_id: PathId,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = services.get_user_or_404(db, user_id)
    token = services.issue_reset_token(
        db, user, timedelta(minutes=settings.password_reset_expire_minutes)
    )
    if not mailer.send_password_reset_email(settings, user.email, user.first_name, token):
        logger.warning("reset token for user %s generated but not emailed", user.id)
        return ResetLinkResponse(
            message=(
                "Reset token generated but email may not have been sent. "
                "Please check email configuration."
            ),
            token=token,
        )
    return ResetLinkResponse(message=f"Password reset link sent successfully to {user.email}")
