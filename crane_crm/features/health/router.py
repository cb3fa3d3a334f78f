"""Health check API endpoints.

- /health/live - Is the process alive?
- /health/ - Dependency checks (database, SMTP, SMS, PDF engine)

The database is the only required dependency. An unconfigured SMTP or SMS
provider, or a missing PDF engine, reports ``degraded`` because those
features fall back instead of failing.
"""

from __future__ import annotations

from datetime import UTC, datetime
import logging

from fastapi import APIRouter, Response, status
from sqlalchemy import text

from crane_crm.core.dependencies import SessionDep  # noqa: TC001
from crane_crm.core.settings import get_app_settings
from crane_crm.features.health.schemas import HealthResponse, LivenessResponse
from crane_crm.infra.email import get_email_client
from crane_crm.infra.pdf import get_pdf_generator
from crane_crm.infra.sms import get_sms_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live", response_model=LivenessResponse, summary="Liveness probe")
async def liveness() -> LivenessResponse:
    return LivenessResponse(timestamp=datetime.now(UTC))


@router.get(
    "/",
    response_model=HealthResponse,
    summary="Comprehensive health check",
    responses={503: {"description": "Database unreachable"}},
)
async def health_check(session: SessionDep, response: Response) -> HealthResponse:
    """Overall status with one boolean per dependency."""
    app_settings = get_app_settings()
    checks: dict[str, bool] = {}

    try:
        await session.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        logger.warning("Health check database probe failed", extra={"error": str(e)})
        checks["database"] = False

    checks["email"] = get_email_client().is_configured
    checks["sms"] = get_sms_client().is_configured
    checks["pdf"] = get_pdf_generator().is_available

    if not checks["database"]:
        overall = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif all(checks.values()):
        overall = "healthy"
    else:
        overall = "degraded"

    return HealthResponse(
        status=overall,
        service=app_settings.service_name,
        version=app_settings.version,
        environment=app_settings.environment,
        timestamp=datetime.now(UTC),
        checks=checks,
    )
