"""Signed session tokens (JWT) bound to a user identity and issue time."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt

from .config import Settings
from .errors import InvalidToken
from .models.user import Role, User

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    """Verified token payload."""

    user_id: int
    role: Role
    issued_at: datetime
    session_id: str | None
    token_type: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Issue and verify tokens signed with a process-wide secret."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(hours=1),
        refresh_ttl: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = _now,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(minutes=settings.refresh_token_expire_minutes),
        )

    def _encode(
        self, user: User, session_id: str | None, expires: timedelta, token_type: str
    ) -> str:
        issued_at = self._clock()
        role = user.role.value if isinstance(user.role, Role) else str(user.role)
        payload = {
            "sub": str(user.id),
            "role": role,
            "iat": issued_at,
            "exp": issued_at + expires,
            "type": token_type,
        }
        if session_id is not None:
            payload["sid"] = session_id
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def issue(self, user: User, session_id: str | None = None) -> str:
        return self._encode(user, session_id, self.access_ttl, ACCESS_TOKEN)

    def issue_refresh(self, user: User, session_id: str | None = None) -> str:
        return self._encode(user, session_id, self.refresh_ttl, REFRESH_TOKEN)

    def verify(self, token: str, token_type: str = ACCESS_TOKEN) -> TokenClaims:
        """Decode ``token`` and return its claims.

        Raises :class:`InvalidToken` on a bad signature, a malformed payload,
        an unexpected token type or an elapsed expiry.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.PyJWTError as exc:
            raise InvalidToken(str(exc)) from exc

        if payload.get("type") != token_type:
            raise InvalidToken("unexpected token type")
        try:
            user_id = int(payload["sub"])
            role = Role(payload["role"])
            issued_at = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidToken("malformed token payload") from exc

        session_id = payload.get("sid")
        if session_id is not None and not isinstance(session_id, str):
            raise InvalidToken("malformed session id")
        return TokenClaims(
            user_id=user_id,
            role=role,
            issued_at=issued_at,
            session_id=session_id,
            token_type=token_type,
        )
