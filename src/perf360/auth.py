"""Access chain for protected routes.

Every protected request runs, in order: bearer token extraction, token
verification (including a live-user check), session timeout check, activity
touch, and finally the route's minimum-role check. Each stage either hands
its result on or stops the request with a 401/403.
"""

import logging
from dataclasses import dataclass
from typing import Generator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from prometheus_client import Counter
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import Settings
from .errors import InvalidToken, SessionNotFound
from .models.user import Role, User
from .sessions import SessionStatus, SessionTracker
from .tokens import TokenClaims, TokenIssuer

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

SESSIONS_EXPIRED_COUNTER = Counter(
    "sessions_expired_total", "Sessions revoked on a request after expiring"
)

ACCESS_TOKEN_REQUIRED = "Access token required"
INVALID_TOKEN = "Invalid or expired token"
INVALID_USER = "User not found or inactive"
INVALID_SESSION = "Invalid session. Please login again."
SESSION_EXPIRED = "Session expired due to inactivity. Please login again."
INSUFFICIENT_PERMISSIONS = "Insufficient permissions"


@dataclass(frozen=True)
class AuthContext:
    """Authenticated caller handed to resource handlers."""

    user: User
    claims: TokenClaims
    token: str

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def role(self) -> Role:
        return self.user.role

    @property
    def session_id(self) -> str | None:
        return self.claims.session_id


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_session_tracker(request: Request) -> SessionTracker:
    return request.app.state.session_tracker


def unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
    tracker: SessionTracker = Depends(get_session_tracker),
) -> AuthContext:
    if credentials is None or not credentials.credentials:
        raise unauthorized(ACCESS_TOKEN_REQUIRED)
    token = credentials.credentials

    try:
        claims = issuer.verify(token)
    except InvalidToken as exc:
        logger.warning(
            "rejected token on %s %s: %s", request.method, request.url.path, exc
        )
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

    if tracker.check_timeout(db, record.id) is SessionStatus.EXPIRED:
        tracker.revoke(db, record.id)
        SESSIONS_EXPIRED_COUNTER.inc()
        logger.info("session %s of user %s expired", record.id, user.id)
        raise unauthorized(SESSION_EXPIRED)

    try:
        tracker.touch(db, record.id)
    except (SQLAlchemyError, SessionNotFound):
        db.rollback()
        logger.warning("session activity update failed for %s", record.id, exc_info=True)

    return AuthContext(user=user, claims=claims, token=token)


def require_role(minimum: Role):
    """Dependency factory rejecting callers ranked below ``minimum``."""

    def dependency(ctx: AuthContext = Depends(get_current_user)) -> AuthContext:
        if not ctx.role.satisfies(minimum):
            logger.warning(
                "user %s with role %s denied, %s required",
                ctx.user_id,
                ctx.role.value,
                minimum.value,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail=INSUFFICIENT_PERMISSIONS
            )
        return ctx

    return dependency


require_manager = require_role(Role.MANAGER)
require_admin = require_role(Role.ADMIN)
