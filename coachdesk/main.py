"""
FastAPI application entry point.

This module creates and configures the FastAPI application through an
application factory (create_app), so tests can build instances with
their own settings.

For local development:
    uvicorn coachdesk.main:app --reload

For production:
    gunicorn coachdesk.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import (
    clients,
    dashboard,
    forms,
    health,
    nutrition,
    pricing_plans,
    public_pages,
    training,
    uploads,
)
from .config.settings import get_settings
from .core.coaching.errors import (
    CoachingError,
    ConflictError,
    InvalidRecordError,
    InvalidStateError,
    InvalidSubmissionError,
    NotFoundOrAccessDeniedError,
    UnauthenticatedError,
)

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup configuration and warn about missing settings."""
    settings = get_settings()

    logger.info(
        "CoachDesk API starting",
        extra={
            "version": settings.api_version,
            "mock_mode": {
                "snowflake": settings.snowflake_mock_mode,
                "r2": settings.r2_mock_mode,
            }
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        # Readiness reports this too; keep serving so /health stays reachable
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    logger.info("CoachDesk API shutting down")


def _status_for(exc: CoachingError) -> int:
    if isinstance(exc, UnauthenticatedError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, NotFoundOrAccessDeniedError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, (InvalidSubmissionError, InvalidRecordError)):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, InvalidStateError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, ConflictError):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    This function is called once at startup (in production) or
    multiple times (in tests with different configurations).
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Back office for independent fitness coaches.

        ## Features

        - Manage clients, their payment state and progress check-ins
        - Build exercise and meal libraries, workouts, splits and meal plans
        - Publish pricing plans, intake forms and a public landing page
        - See headline numbers on the dashboard

        ## Authentication

        All endpoints require an API key in the `X-API-Key` header.
        Coach endpoints also require the signed-in coach's id in
        `X-User-Id`. Records belonging to other coaches behave as if they
        don't exist.

        Public endpoints (`GET /api/v1/forms/{id}/public`,
        `POST /api/v1/forms/{id}/submissions`, `GET /api/v1/pages/{slug}`)
        need only the API key.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Allowed origins come from the CORS_ORIGINS environment variable
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(clients.router, prefix=f"{API_PREFIX}/clients", tags=["Clients"])
    app.include_router(training.router, prefix=API_PREFIX, tags=["Training"])
    app.include_router(nutrition.router, prefix=API_PREFIX, tags=["Nutrition"])
    app.include_router(
        pricing_plans.router,
        prefix=f"{API_PREFIX}/pricing-plans",
        tags=["Pricing Plans"],
    )
    app.include_router(forms.router, prefix=API_PREFIX, tags=["Forms"])
    app.include_router(public_pages.router, prefix=API_PREFIX, tags=["Public Pages"])
    app.include_router(dashboard.router, prefix=f"{API_PREFIX}/dashboard", tags=["Dashboard"])
    app.include_router(uploads.router, prefix=f"{API_PREFIX}/uploads", tags=["Uploads"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "CoachDesk API",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(CoachingError)
    async def coaching_error_handler(request: Request, exc: CoachingError):
        """Translate domain errors into HTTP responses."""
        status_code = _status_for(exc)
        content: dict = {"detail": str(exc)}
        if isinstance(exc, InvalidSubmissionError):
            content["problems"] = list(exc.problems)

        logger.info(
            "Request rejected",
            extra={
                "path": request.url.path,
                "error_type": type(exc).__name__,
                "status_code": status_code,
            }
        )

        if status_code == status.HTTP_401_UNAUTHORIZED:
            return JSONResponse(
                status_code=status_code,
                content=content,
                headers={"WWW-Authenticate": "X-User-Id"},
            )
        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Prevents stack traces from leaking to clients. The full error is
        logged server-side; the response carries a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error. Please contact support if this persists."
            }
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# This is what uvicorn/gunicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "coachdesk.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
