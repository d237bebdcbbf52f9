"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shiftpay.api.routes import (
    health_router,
    pay_stubs_router,
    payroll_runs_router,
    punches_router,
)
from shiftpay.database import dispose_db, init_db
from shiftpay.errors import (
    NotFoundError,
    PersistenceError,
    ShiftPayError,
    StateConflictError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS_CODES: list[tuple[type[ShiftPayError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (StateConflictError, status.HTTP_409_CONFLICT),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_code_for(exc: ShiftPayError) -> int:
    """HTTP status for a domain error."""
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    init_db()
    yield
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="shiftpay API",
        description="Time clock and payroll processing",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(ShiftPayError)
    async def shiftpay_exception_handler(
        request: Request, exc: ShiftPayError
    ) -> JSONResponse:
        """Translate domain errors into stable error codes."""
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "code": exc.code},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(punches_router, prefix="/api/v1")
    app.include_router(payroll_runs_router, prefix="/api/v1")
    app.include_router(pay_stubs_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
