"""FastAPI application for the Performance360 review platform."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .database import SessionLocal, build_engine, build_session_factory, init_db
from .limits import limiter
from .routers import (
    assessments_router,
    attendance_router,
    auth_router,
    business_units_router,
    colleague_feedback_router,
    maintenance_router,
    manager_feedback_router,
    sessions_router,
    teams_router,
    users_router,
)
from .sessions import SessionTracker
from .tokens import TokenIssuer

logger = logging.getLogger(__name__)

# Prometheus counter to track API requests by method, endpoint and status code
REQUEST_COUNTER = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)


def _message(status_code: int, message: str, headers=None, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"message": message, **extra}, headers=headers
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning("rate limit hit on %s %s: %s", request.method, request.url.path, exc.detail)
    return _message(429, "Too many requests, please try again later.")


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if exc.status_code == 404 and detail == "Not Found":
        detail = "Route not found"
    return _message(exc.status_code, str(detail), headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in err["loc"][1:]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return _message(400, "Validation failed", errors=errors)


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return _message(409, "Resource already exists")


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("database error on %s %s", request.method, request.url.path)
    return _message(500, "Database error")


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return _message(500, "Internal server error")


def create_app(settings: Settings, session_factory: sessionmaker | None = None) -> FastAPI:
    """Build the application around one settings object and session factory."""
    if session_factory is None:
        session_factory = build_session_factory(build_engine(settings.database_url))
    init_db(session_factory.kw["bind"])

    app = FastAPI(title=settings.api_title)
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.token_issuer = TokenIssuer.from_settings(settings)
    app.state.session_tracker = SessionTracker.from_settings(settings)
    app.state.limiter = limiter

    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    if settings.allow_all_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=".*",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
        )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log incoming requests and their outcomes while updating metrics."""
        logger.info("request %s %s", request.method, request.url.path)
        try:
            response = await call_next(request)
            REQUEST_COUNTER.labels(
                method=request.method,
                endpoint=request.url.path,
                status=str(response.status_code),
            ).inc()
            logger.info(
                "response %s %s status %s",
                request.method,
                request.url.path,
                response.status_code,
            )
            return response
        except Exception:
            REQUEST_COUNTER.labels(
                method=request.method,
                endpoint=request.url.path,
                status="500",
            ).inc()
            logger.exception("error handling %s %s", request.method, request.url.path)
            raise

    @app.get("/health")
    def health():
        return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    for router in (
        auth_router,
        users_router,
        sessions_router,
        teams_router,
        business_units_router,
        colleague_feedback_router,
        manager_feedback_router,
        assessments_router,
        attendance_router,
    ):
        app.include_router(router)

    if settings.test_routes_enabled:
        if settings.enable_test_routes:
            logger.warning(
                "ENABLE_TEST_ROUTES is set: unauthenticated maintenance routes are mounted"
            )
        app.include_router(maintenance_router)

    return app


# served by ``python -m perf360``; tests build their own through create_app
app = create_app(get_settings(), SessionLocal)
