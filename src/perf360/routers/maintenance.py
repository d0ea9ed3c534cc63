"""Unauthenticated account maintenance for end-to-end test suites.

Only mounted outside production or when ENABLE_TEST_ROUTES is set.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import services
from ..auth import get_db, get_settings
from ..config import Settings
from ..logging_utils import redact_email
from ..models import User
from ..schemas import (
    EmailPattern,
    EmailTarget,
    MaintenanceUserCreate,
    ManagerAssignmentByEmail,
    MessageResponse,
    UserOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/test-cleanup", tags=["test-cleanup"])


@router.post("/create-user", response_model=UserOut, status_code=201)
def create_user(
    payload: MaintenanceUserCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    existing = services.get_user_by_email(db, payload.email)
    if existing is not None:
        services.purge_user(db, existing)
    return services.create_user(
        db,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.role,
        rounds=settings.bcrypt_rounds,
        enforce_policy=False,
    )


@router.delete("/delete", response_model=MessageResponse)
def delete_user(payload: EmailTarget, db: Session = Depends(get_db)):
    user = services.get_user_by_email(db, payload.email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    services.purge_user(db, user)
    logger.info("maintenance deleted %s", redact_email(payload.email))
    return MessageResponse(message="User deleted successfully")


@router.delete("/delete-pattern", response_model=MessageResponse)
def delete_by_pattern(payload: EmailPattern, db: Session = Depends(get_db)):
    users = db.query(User).filter(User.email.contains(payload.pattern.lower())).all()
    for user in users:
        services.purge_user(db, user)
    logger.info("maintenance deleted %d users matching pattern", len(users))
    return MessageResponse(message=f"Deleted {len(users)} users")


@router.put("/assign-manager", response_model=UserOut)
def assign_manager(payload: ManagerAssignmentByEmail, db: Session = Depends(get_db)):
    user = services.get_user_by_email(db, payload.user_email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    manager_id = None
    if payload.manager_email is not None:
        manager = services.get_user_by_email(db, payload.manager_email)
        if manager is None:
            raise HTTPException(status_code=404, detail="Manager not found")
        manager_id = manager.id
    return services.assign_manager(db, user, manager_id)
