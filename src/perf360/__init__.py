"""Performance360: employee feedback, self-assessment and attendance API."""

from .api import app, create_app
from .worker import celery_app

__all__ = ["app", "celery_app", "create_app"]
