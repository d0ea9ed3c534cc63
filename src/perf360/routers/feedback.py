"""Colleague and manager feedback forms."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import services
from ..auth import AuthContext, get_current_user, get_db, require_manager
from ..schemas import (
    ColleagueFeedbackCreate,
    ColleagueFeedbackOut,
    FeedbackStatusUpdate,
    ManagerFeedbackCreate,
    ManagerFeedbackOut,
    PathId,
)

colleague_router = APIRouter(prefix="/api/colleague-feedback", tags=["colleague-feedback"])
manager_router = APIRouter(prefix="/api/manager-feedback", tags=["manager-feedback"])


def _colleague_out(items, viewer, reveal_sender=False) -> List[ColleagueFeedbackOut]:
    return [services.colleague_feedback_to_out(f, viewer, reveal_sender) for f in items]


@colleague_router.post("", response_model=ColleagueFeedbackOut, status_code=201)
def submit_colleague_feedback(
    payload: ColleagueFeedbackCreate,
    ctx: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    feedback = services.create_colleague_feedback(db, ctx.user, payload)
    return services.colleague_feedback_to_out(feedback, ctx.user)


@colleague_router.get("/received", response_model=List[ColleagueFeedbackOut])
def colleague_received(
    ctx: AuthContext = Depends(get_current_user), db: Session = Depends(get_db)
):
    return _colleague_out(services.colleague_feedback_received(db, ctx.user_id), ctx.user)


@colleague_router.get("/sent", response_model=List[ColleagueFeedbackOut])
def colleague_sent(
    ctx: AuthContext = Depends(get_current_user), db: Session = Depends(get_db)
):
    return _colleague_out(services.colleague_feedback_sent(db, ctx.user_id), ctx.user)


@colleague_router.get("/received/{user_id}", response_model=List[ColleagueFeedbackOut])
def colleague_received_by_user(
    user_id: PathId,
    ctx: AuthContext = Depends(require_manager),
    db: Session = Depends(get_db),
):
    services.ensure_user_access(db, ctx.user, user_id)
    return _colleague_out(services.colleague_feedback_received(db, user_id), ctx.user)


@colleague_router.get("/sent/{user_id}", response_model=List[ColleagueFeedbackOut])
def colleague_sent_by_user(
    user_id: PathId,
    ctx: AuthContext = Depends(require_manager),
    db: Session = Depends(get_db),
):
    services.ensure_user_access(db, ctx.user, user_id)
    return _colleague_out(
        services.colleague_feedback_sent(db, user_id), ctx.user, reveal_sender=True
    )


@colleague_router.patch("/{feedback_id}/status", response_model=ColleagueFeedbackOut)
def update_colleague_status(
    feedback_id: PathId,
    payload: FeedbackStatusUpdate,
    ctx: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    feedback = services.update_feedback_status(db, ctx.user, feedback_id, payload.status)
    return services.colleague_feedback_to_out(feedback, ctx.user)


@manager_router.post("", response_model=ManagerFeedbackOut, status_code=201)
def submit_manager_feedback(
    payload: ManagerFeedbackCreate,
    ctx: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return services.create_manager_feedback(db, ctx.user, payload)


@manager_router.get("/received", response_model=List[ManagerFeedbackOut])
def manager_received(
    ctx: AuthContext = Depends(get_current_user), db: Session = Depends(get_db)
):
    return services.manager_feedback_received(db, ctx.user_id)


@manager_router.get("/sent", response_model=List[ManagerFeedbackOut])
def manager_sent(
    ctx: AuthContext = Depends(get_current_user), db: Session = Depends(get_db)
):
    return services.manager_feedback_sent(db, ctx.user_id)


@manager_router.get("/received/{user_id}", response_model=List[ManagerFeedbackOut])
def manager_received_by_user(
    user_id: PathId,
    ctx: AuthContext = Depends(require_manager),
    db: Session = Depends(get_db),
):
    services.ensure_user_access(db, ctx.user, user_id)
    return services.manager_feedback_received(db, user_id)
