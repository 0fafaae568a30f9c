"""
Liveness and readiness checks.

`/health` answers as long as the process is up. `/health/ready` also
verifies the configuration and runs a trivial query, and answers 503 when
either fails so the load balancer stops sending traffic here.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ... import __version__
from ...config.settings import Settings
from ..dependencies import SettingsDep, open_connection

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    details: dict[str, Any] = {}


class ReadinessCheck(BaseModel):
    name: str
    status: str  # "ok" or "error"
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class ReadinessResponse(BaseModel):
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ReadinessCheck]


def _check_configuration(settings: Settings) -> ReadinessCheck:
    missing = settings.validate_required_fields()
    if missing:
        return ReadinessCheck(
            name="configuration",
            status="error",
            error=f"Missing required fields: {', '.join(missing)}",
        )
    return ReadinessCheck(name="configuration", status="ok")


def _check_database(settings: Settings) -> ReadinessCheck:
    # connecting is part of the check: an unreachable database means not ready
    try:
        with open_connection(settings) as connection:
            cursor = connection.cursor()
            try:
                cursor.execute("SELECT 1")
                cursor.fetchone()
            finally:
                cursor.close()
    except Exception as e:
        logger.error("Database health check failed", extra={"error": str(e)})
        return ReadinessCheck(name="database", status="error", error=str(e))

    note = "mock mode" if settings.snowflake_mock_mode else None
    return ReadinessCheck(name="database", status="ok", error=note)


@router.get("", response_model=HealthResponse, summary="Liveness check")
async def health_check(settings: SettingsDep) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        details={
            "mock_mode": {
                "snowflake": settings.snowflake_mock_mode,
                "r2": settings.r2_mock_mode,
            }
        }
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    responses={503: {"description": "Service not ready", "model": ReadinessResponse}},
)
async def readiness_check(settings: SettingsDep):
    checks = [
        _check_configuration(settings),
        _check_database(settings),
    ]
    ready = all(check.ok for check in checks)

    response = ReadinessResponse(
        status="ready" if ready else "not_ready",
        version=__version__,
        checks=checks,
    )
    if ready:
        return response

    logger.warning(
        "Readiness check failed",
        extra={"checks": [c.model_dump() for c in checks if not c.ok]}
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(),
    )
