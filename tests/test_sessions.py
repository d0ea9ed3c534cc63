from datetime import datetime, timedelta

import pytest

from perf360.errors import SessionNotFound
from perf360.models import UserSession
from perf360.sessions import SessionStatus, SessionTracker


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 5, 9, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tracker(clock):
    return SessionTracker(
        idle_timeout=timedelta(hours=2), absolute_timeout=timedelta(hours=4), clock=clock
    )


@pytest.fixture
def user(make_user):
    return make_user()


def test_new_session_is_valid(db, tracker, user, clock):
    sid = tracker.create(db, user.id, ip_address="10.0.0.1", user_agent="pytest")
    record = tracker.get(db, sid)
    assert record.created_at == record.last_activity_at == clock.now
    assert record.expires_at == clock.now + timedelta(hours=4)
    assert tracker.check_timeout(db, sid) is SessionStatus.VALID


def test_idle_timeout(db, tracker, user, clock):
    sid = tracker.create(db, user.id)
    clock.advance(hours=2)
    # exactly at the idle limit is still valid
    assert tracker.check_timeout(db, sid) is SessionStatus.VALID
    clock.advance(seconds=1)
    assert tracker.check_timeout(db, sid) is SessionStatus.EXPIRED


def test_touch_resets_idle_clock(db, tracker, user, clock):
    sid = tracker.create(db, user.id)
    clock.advance(minutes=100)
    tracker.touch(db, sid)
    clock.advance(minutes=100)
    assert tracker.check_timeout(db, sid) is SessionStatus.VALID
    assert tracker.get(db, sid).last_activity_at == clock.now - timedelta(minutes=100)


def test_activity_never_extends_absolute_ceiling(db, tracker, user, clock):
    sid = tracker.create(db, user.id)
    for _ in range(3):
        clock.advance(hours=1)
        tracker.touch(db, sid)
        assert tracker.check_timeout(db, sid) is SessionStatus.VALID
    clock.advance(hours=1)
    assert tracker.check_timeout(db, sid) is SessionStatus.EXPIRED


def test_revoked_session_is_gone(db, tracker, user):
    sid = tracker.create(db, user.id)
    tracker.revoke(db, sid)
    with pytest.raises(SessionNotFound):
        tracker.get(db, sid)
    with pytest.raises(SessionNotFound):
        tracker.check_timeout(db, sid)
    with pytest.raises(SessionNotFound):
        tracker.touch(db, sid)
    with pytest.raises(SessionNotFound):
        tracker.revoke(db, sid)


def test_missing_session_id(db, tracker):
    with pytest.raises(SessionNotFound):
        tracker.get(db, None)


def test_revoke_user_keeps_current(db, tracker, user):
    keep = tracker.create(db, user.id)
    tracker.create(db, user.id)
    tracker.create(db, user.id)
    assert tracker.revoke_user(db, user.id, keep=keep) == 2
    assert [s.id for s in db.query(UserSession).all()] == [keep]


def test_purge_expired(db, tracker, user, clock):
    idle = tracker.create(db, user.id)
    clock.advance(hours=1)
    fresh = tracker.create(db, user.id)
    clock.advance(hours=1, minutes=30)
    assert tracker.purge_expired(db) == 1
    db.expire_all()
    remaining = {s.id for s in db.query(UserSession).all()}
    assert remaining == {fresh}
    assert idle not in remaining
