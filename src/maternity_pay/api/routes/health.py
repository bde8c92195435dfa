"""Liveness, readiness and database health endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError

from maternity_pay.api.dependencies import DbSession
from maternity_pay.config import get_settings
from maternity_pay.models import PayrollPeriod

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    database: str
    engine_version: str


class ReadinessResponse(BaseModel):
    status: str
    calendar_periods: dict[str, int]


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession) -> HealthResponse:
    """Report whether the database answers; degraded if it does not."""
    database = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        database = "unhealthy"

    return HealthResponse(
        status="healthy" if database == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=database,
        engine_version=get_settings().engine_version,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(db: DbSession, response: Response) -> ReadinessResponse:
    """Ready once both staff classes have payroll periods loaded."""
    rows = await db.execute(
        select(PayrollPeriod.staff_class, func.count()).group_by(PayrollPeriod.staff_class)
    )
    counts = {"salaried": 0, "hourly": 0}
    counts.update({staff_class: count for staff_class, count in rows.all()})

    if all(counts.values()):
        return ReadinessResponse(status="ready", calendar_periods=counts)

    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(status="not_ready", calendar_periods=counts)


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
