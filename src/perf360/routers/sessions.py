"""Administrative view over persisted sessions."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import services
from ..auth import AuthContext, get_db, get_session_tracker, require_admin
from ..errors import SessionNotFound
from ..schemas import (
    MAX_ENTITY_ID,
    MessageResponse,
    PathId,
    SessionListResponse,
    SessionStats,
    UserSessionsResponse,
)
from ..sessions import SessionTracker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.get("", response_model=SessionListResponse)
def list_sessions(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    user_id: int | None = Query(None, alias="userId", ge=1, le=MAX_ENTITY_ID),
    active: bool | None = Query(None),
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    tracker: SessionTracker = Depends(get_session_tracker),
):
    return services.list_sessions(
        db, tracker, page=page, limit=limit, user_id=user_id, active=active
    )


@router.get("/stats", response_model=SessionStats)
def stats(
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    tracker: SessionTracker = Depends(get_session_tracker),
):
    return services.session_stats(db, tracker)


@router.get("/user/{user_id}", response_model=UserSessionsResponse)
def sessions_for_user(
    user_id: PathId,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    tracker: SessionTracker = Depends(get_session_tracker),
):
    return services.user_sessions(db, tracker, user_id)


def _revoke(db: Session, tracker: SessionTracker, session_id: str, actor: int) -> MessageResponse:
    try:
        tracker.revoke(db, session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found") from exc
    logger.info("session %s revoked by admin %s", session_id, actor)
    return MessageResponse(message="Session revoked successfully")


@router.delete("/{session_id}", response_model=MessageResponse)
def revoke_session(
    session_id: str,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    tracker: SessionTracker = Depends(get_session_tracker),
):
    return _revoke(db, tracker, session_id, ctx.user_id)


@router.patch("/{session_id}/deactivate", response_model=MessageResponse)
def deactivate_session(
    session_id: str,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    tracker: SessionTracker = Depends(get_session_tracker),
):
    return _revoke(db, tracker, session_id, ctx.user_id)
