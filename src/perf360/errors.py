"""Domain exceptions raised below the HTTP layer."""


class InvalidToken(Exception):
    """Token signature, payload, type or expiry failed verification."""


class SessionNotFound(Exception):
    """No session row exists for the identifier (never created or revoked)."""

    def __init__(self, session_id: str | None):
        super().__init__(f"session {session_id!r} not found")
        self.session_id = session_id


class ManagerAssignmentError(ValueError):
    """Reassigning a manager would break the reporting tree."""
