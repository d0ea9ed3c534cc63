"""Celery application with a periodic task purging expired sessions."""

from celery import Celery, signals

from .config import Settings, get_settings
from .logging_utils import configure_logging


def build_celery_app(settings: Settings) -> Celery:
    app = Celery(
        "perf360",
        broker=settings.redis_url,
        backend=settings.redis_url,
        include=["perf360.tasks"],
    )
    app.conf.beat_schedule = {
        "purge-expired-sessions": {
            "task": "perf360.tasks.purge_expired_sessions",
            "schedule": settings.session_cleanup_frequency,
        }
    }
    app.conf.timezone = "UTC"
    return app


# worker entry point defaults
settings = get_settings()
celery_app = build_celery_app(settings)


@signals.setup_logging.connect
def _setup_logging(**kwargs):
    configure_logging(settings.log_level)
