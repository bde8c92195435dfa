"""API routes."""

from maternity_pay.api.routes.cases import router as cases_router
from maternity_pay.api.routes.health import router as health_router
from maternity_pay.api.routes.reporting import router as reporting_router

__all__ = ["cases_router", "health_router", "reporting_router"]
