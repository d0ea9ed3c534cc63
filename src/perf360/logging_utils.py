"""Logging setup and helpers that keep credentials out of log lines."""

import logging
from typing import Any, Iterable

SENSITIVE_FIELDS = (
    "password",
    "token",
    "authorization",
    "jwt",
    "secret",
    "apikey",
)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def sanitize_for_logging(data: Any, sensitive_fields: Iterable[str] = SENSITIVE_FIELDS) -> Any:
    """Return a copy of ``data`` with sensitive keys replaced by ``[REDACTED]``.

    Keys match case-insensitively on substrings, so ``refreshToken`` and
    ``currentPassword`` are caught. Nested dicts and lists are walked.
    """
    fields = tuple(f.lower() for f in sensitive_fields)
    if isinstance(data, list):
        return [sanitize_for_logging(item, fields) for item in data]
    if not isinstance(data, dict):
        return data

    sanitized = {}
    for key, value in data.items():
        lowered = str(key).lower()
        if any(field in lowered for field in fields):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, (dict, list)):
            sanitized[key] = sanitize_for_logging(value, fields)
        else:
            sanitized[key] = value
    return sanitized


def redact_email(email: str) -> str:
    """Mask the local part of an address: ``john@x.com`` -> ``j**n@x.com``."""
    if not email or "@" not in email:
        return email
    local, domain = email.split("@", 1)
    if len(local) <= 2:
        return f"{local[:1]}***@{domain}"
    return f"{local[0]}{'*' * (len(local) - 2)}{local[-1]}@{domain}"
