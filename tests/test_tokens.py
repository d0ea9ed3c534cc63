from datetime import datetime, timedelta, timezone

import jwt
import pytest

from perf360.errors import InvalidToken
from perf360.models import Role, User
from perf360.tokens import ACCESS_TOKEN, REFRESH_TOKEN, TokenIssuer


def _user(role=Role.EMPLOYEE):
    return User(id=7, email="seven@company.com", role=role)


def test_issue_and_verify_round_trip():
    issuer = TokenIssuer("s1")
    claims = issuer.verify(issuer.issue(_user(Role.MANAGER), session_id="abc"))
    assert claims.user_id == 7
    assert claims.role is Role.MANAGER
    assert claims.session_id == "abc"
    assert claims.token_type == ACCESS_TOKEN


def test_token_signed_with_other_secret_is_rejected():
    token = TokenIssuer("s1").issue(_user())
    with pytest.raises(InvalidToken):
        TokenIssuer("s2").verify(token)


def test_expired_token_is_rejected():
    past = datetime.now(timezone.utc) - timedelta(hours=3)
    token = TokenIssuer("s1", clock=lambda: past).issue(_user())
    with pytest.raises(InvalidToken):
        TokenIssuer("s1").verify(token)


def test_refresh_token_is_not_an_access_token():
    issuer = TokenIssuer("s1")
    refresh = issuer.issue_refresh(_user(), session_id="abc")
    with pytest.raises(InvalidToken):
        issuer.verify(refresh)
    assert issuer.verify(refresh, token_type=REFRESH_TOKEN).session_id == "abc"


def test_garbage_is_rejected():
    with pytest.raises(InvalidToken):
        TokenIssuer("s1").verify("not-a-token")


def test_unknown_role_is_rejected():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "7", "role": "SUPERUSER", "iat": now, "exp": now + timedelta(hours=1), "type": "access"},
        "s1",
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        TokenIssuer("s1").verify(token)


def test_missing_subject_is_rejected():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"role": "ADMIN", "iat": now, "exp": now + timedelta(hours=1), "type": "access"},
        "s1",
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        TokenIssuer("s1").verify(token)
