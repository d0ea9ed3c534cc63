"""Registration, login, token refresh, logout and password reset links."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from prometheus_client import Counter
from sqlalchemy.orm import Session

from .. import services
from ..auth import (
    INVALID_SESSION,
    INVALID_TOKEN,
    INVALID_USER,
    SESSION_EXPIRED,
    AuthContext,
    get_current_user,
    get_db,
    get_session_tracker,
    get_settings,
    get_token_issuer,
    unauthorized,
)
from ..config import Settings
from ..database import utcnow
from ..errors import InvalidToken, SessionNotFound
from ..limits import SENSITIVE_RATE_LIMITS, limiter
from ..logging_utils import redact_email
from ..models import User
from ..schemas import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    ResetTokenStatus,
    TokenPair,
    TokenPasswordReset,
    UserOut,
)
from ..sessions import SessionTracker
from ..tokens import REFRESH_TOKEN, TokenIssuer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

LOGIN_COUNTER = Counter("auth_logins_total", "Login attempts", ["outcome"])

INVALID_CREDENTIALS = "Invalid credentials"


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else None


def _start_session(
    request: Request,
    db: Session,
    user: User,
    issuer: TokenIssuer,
    tracker: SessionTracker,
    message: str,
) -> AuthResponse:
    session_id = tracker.create(
        db,
        user.id,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return AuthResponse(
        message=message,
        user=UserOut.model_validate(user),
        token=issuer.issue(user, session_id=session_id),
        refresh_token=issuer.issue_refresh(user, session_id=session_id),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(SENSITIVE_RATE_LIMITS)
def register(
    request: Request,
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    issuer: TokenIssuer = Depends(get_token_issuer),
    tracker: SessionTracker = Depends(get_session_tracker),
):
    user = services.create_user(
        db,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        rounds=settings.bcrypt_rounds,
    )
    logger.info("registered %s", redact_email(user.email))
    return _start_session(request, db, user, issuer, tracker, "User registered successfully")


@router.post("/login", response_model=AuthResponse)
@limiter.limit(SENSITIVE_RATE_LIMITS)
def login(
    request: Request,
    payload: LoginRequest,
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
    tracker: SessionTracker = Depends(get_session_tracker),
):
    user = services.authenticate(db, payload.email, payload.password)
    if user is None:
        LOGIN_COUNTER.labels(outcome="failure").inc()
        logger.warning("failed login for %s", redact_email(payload.email))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    user.last_login_at = utcnow()
    db.commit()
    db.refresh(user)
    LOGIN_COUNTER.labels(outcome="success").inc()
    logger.info("user %s logged in", user.id)
    return _start_session(request, db, user, issuer, tracker, "Login successful")


@router.post("/refresh", response_model=TokenPair)
@limiter.limit(SENSITIVE_RATE_LIMITS)
def refresh(
    request: Request,
    payload: RefreshRequest,
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
    tracker: SessionTracker = Depends(get_session_tracker),
):
    try:
        claims = issuer.verify(payload.refresh_token, token_type=REFRESH_TOKEN)
    except InvalidToken as exc:
        raise unauthorized(INVALID_TOKEN) from exc

    user = db.get(User, claims.user_id)
    if user is None or not user.is_active:
        raise unauthorized(INVALID_USER)

    try:
        record = tracker.get(db, claims.session_id)
    except SessionNotFound as exc:
        raise unauthorized(INVALID_SESSION) from exc
    if record.user_id != user.id:
        raise unauthorized(INVALID_SESSION)
    if tracker.is_expired(record):
        tracker.revoke(db, record.id)
        raise unauthorized(SESSION_EXPIRED)

    tracker.touch(db, record.id)
    return TokenPair(
        message="Token refreshed successfully",
        token=issuer.issue(user, session_id=record.id),
        refresh_token=issuer.issue_refresh(user, session_id=record.id),
    )


@router.post("/logout", response_model=MessageResponse)
def logout(
    ctx: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
    tracker: SessionTracker = Depends(get_session_tracker),
):
    try:
        tracker.revoke(db, ctx.session_id)
    except SessionNotFound:
        logger.info("session %s already gone at logout", ctx.session_id)
    return MessageResponse(message="Logged out successfully")


@router.patch("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    ctx: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    tracker: SessionTracker = Depends(get_session_tracker),
):
    services.change_password(
        db,
        tracker,
        ctx.user,
        payload.current_password,
        payload.new_password,
        keep_session=ctx.session_id,
        rounds=settings.bcrypt_rounds,
    )
    return MessageResponse(message="Password changed successfully")


@router.get("/me", response_model=UserOut)
def me(ctx: AuthContext = Depends(get_current_user)):
    return ctx.user


@router.get("/reset-password/{token}", response_model=ResetTokenStatus)
def verify_reset_token(token: str, db: Session = Depends(get_db)):
    try:
        user = services.get_user_by_reset_token(db, token)
    except HTTPException as exc:
        logger.warning("reset token check failed: %s", exc.detail)
        return JSONResponse(
            status_code=exc.status_code, content={"valid": False, "message": exc.detail}
        )
    return ResetTokenStatus(valid=True, email=user.email)


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit(SENSITIVE_RATE_LIMITS)
def reset_password(
    request: Request,
    payload: TokenPasswordReset,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    tracker: SessionTracker = Depends(get_session_tracker),
):
    user = services.reset_password_with_token(
        db, tracker, payload.token, payload.password, rounds=settings.bcrypt_rounds
    )
    logger.info("password reset by token for %s", redact_email(user.email))
    return MessageResponse(message="Password reset successfully")
