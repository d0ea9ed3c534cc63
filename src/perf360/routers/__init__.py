"""HTTP routers, one per resource."""

from .assessments import router as assessments_router
from .attendance import router as attendance_router
from .auth import router as auth_router
from .feedback import colleague_router as colleague_feedback_router
from .feedback import manager_router as manager_feedback_router
from .maintenance import router as maintenance_router
from .organization import business_units_router, teams_router
from .sessions import router as sessions_router
from .users import router as users_router

__all__ = [
    "assessments_router",
    "attendance_router",
    "auth_router",
    "business_units_router",
    "colleague_feedback_router",
    "maintenance_router",
    "manager_feedback_router",
    "sessions_router",
    "teams_router",
    "users_router",
]
