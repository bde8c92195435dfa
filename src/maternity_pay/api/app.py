"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from maternity_pay.api.routes import cases_router, health_router, reporting_router
from maternity_pay.calculators.cmp_engine import CalculationError
from maternity_pay.config import configure_logging
from maternity_pay.database import create_schema, dispose_db, init_db
from maternity_pay.services.case_store import NotFoundError, PersistenceError, StaleCaseError
from maternity_pay.services.state_machine import InvalidTransitionError
from maternity_pay.services.validation import ValidationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    configure_logging()
    engine, _ = init_db()
    await create_schema(engine)
    yield
    # Shutdown
    await dispose_db()


def _error(status_code: int, detail: str, code: str, messages: list[str] | None = None) -> JSONResponse:
    content: dict = {"detail": detail, "code": code}
    if messages is not None:
        content["messages"] = messages
    return JSONResponse(status_code=status_code, content=content)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Maternity Pay Engine API",
        description="SMP alignment, CMP top-up and maternity pay ledgers",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(
            422,
            "Validation failed",
            "VALIDATION_ERROR",
            exc.messages,
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc), "NOT_FOUND")

    @app.exception_handler(InvalidTransitionError)
    async def transition_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, str(exc), "INVALID_TRANSITION")

    @app.exception_handler(StaleCaseError)
    async def stale_case_handler(request: Request, exc: StaleCaseError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, str(exc), "VERSION_CONFLICT")

    @app.exception_handler(PersistenceError)
    async def persistence_handler(request: Request, exc: PersistenceError) -> JSONResponse:
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc), "PERSISTENCE_ERROR")

    @app.exception_handler(CalculationError)
    async def calculation_handler(request: Request, exc: CalculationError) -> JSONResponse:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), "CALCULATION_ERROR")

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred",
            "INTERNAL_ERROR",
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(cases_router, prefix="/api/v1")
    app.include_router(reporting_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
