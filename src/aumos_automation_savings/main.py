"""AumOS automation savings service entry point."""

import os
import platform
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from aumos_automation_savings.adapters.database import dispose_database, init_database
from aumos_automation_savings.api.schemas import ErrorResponse, HealthResponse
from aumos_automation_savings.core.errors import (
    ConfigurationError,
    ExecutionError,
    InvalidWindowError,
    MappingError,
    SavingsServiceError,
    SchemaError,
)
from aumos_automation_savings.observability import configure_logging, request_logging_middleware
from aumos_automation_savings.settings import Settings

logger = structlog.get_logger(__name__)
settings = Settings()

_started_at = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    configure_logging(settings)
    logger.info(
        "aumos_automation_savings_starting",
        service=settings.service_name,
        reporting_table=settings.reporting_table,
        savings_table=settings.savings_table,
        usecase_table=settings.usecase_table,
    )
    if settings.database_configured:
        init_database(settings)
    else:
        # Requests needing the database answer 503 until it is configured
        logger.warning("database_not_configured")
    yield
    await dispose_database()
    logger.info("aumos_automation_savings_shutting_down")


app = FastAPI(title="AumOS Automation Savings", version="0.1.0", lifespan=lifespan)
app.middleware("http")(request_logging_middleware)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@app.exception_handler(ConfigurationError)
async def _configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
    return _error_response(503, str(exc))


@app.exception_handler(InvalidWindowError)
async def _invalid_window(request: Request, exc: InvalidWindowError) -> JSONResponse:
    return _error_response(400, str(exc))


@app.exception_handler(MappingError)
async def _mapping_error(request: Request, exc: MappingError) -> JSONResponse:
    logger.warning("column_mapping_failed", table=exc.table, roles=list(exc.roles))
    return _error_response(422, str(exc))


@app.exception_handler(SchemaError)
@app.exception_handler(ExecutionError)
@app.exception_handler(SavingsServiceError)
async def _server_error(request: Request, exc: SavingsServiceError) -> JSONResponse:
    logger.error("request_failed", path=request.url.path, error=str(exc), error_type=type(exc).__name__)
    return _error_response(500, str(exc))


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request_unhandled_error",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return _error_response(500, "Internal server error")


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health() -> HealthResponse:
    return HealthResponse(
        time=datetime.now(timezone.utc),
        uptime_seconds=round(time.monotonic() - _started_at, 3),
        pid=os.getpid(),
        python_version=platform.python_version(),
    )


from aumos_automation_savings.api.router import router  # noqa: E402

app.include_router(router, prefix="/api/v1")
