"""Shared slowapi limiter for the credential endpoints."""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

SENSITIVE_RATE_LIMIT = "10/minute"
SENSITIVE_HOURLY_RATE_LIMIT = "100/hour"
SENSITIVE_RATE_LIMITS = f"{SENSITIVE_RATE_LIMIT};{SENSITIVE_HOURLY_RATE_LIMIT}"
