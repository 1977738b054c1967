"""
DevCamper Backend — FastAPI Application Factory
=================================================

What:  Builds the FastAPI application: logging, lifespan, middleware,
       exception handlers and routers.
Who:   uvicorn (`uvicorn devcamper.main:app`, or the `devcamper-api` script).

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                      FastAPI App                        │
    │                                                         │
    │  Middleware:  Request ID → Access Log → GZip → CORS     │
    │                                                         │
    │  Routes:                                                │
    │  ┌──────────────┐ ┌──────────────┐ ┌─────────────────┐  │
    │  │ /bootcamps   │ │ /courses     │ │ /health         │  │
    │  └──────────────┘ └──────────────┘ └─────────────────┘  │
    │                                                         │
    │  Exception Handlers:                                    │
    │  Validation/Duplicate→400 │ NotFound→404 │ DB→500       │
    │  Geocoder/Circuit→503     │ anything else→500           │
    └─────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, table creation (db_create_tables)
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from devcamper import __version__
from devcamper.config import settings
from devcamper.database import create_tables, dispose_engine
from devcamper.exceptions import (
    CircuitBreakerOpenError,
    DatabaseError,
    DevCamperError,
    DuplicateError,
    GeocoderError,
    NotFoundError,
    ValidationError,
)
from devcamper.middleware.logging import RequestLoggingMiddleware
from devcamper.middleware.request_id import RequestIDMiddleware, request_id_var
from devcamper.routes import bootcamps, courses, health

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Configure the root logger once: one format, stdout, settings.log_level."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Our access log replaces uvicorn's; SQL echo only when LOG_LEVEL=DEBUG.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.log_level == "DEBUG" else logging.WARNING
    )
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("DevCamper API %s starting up...", __version__)

    # Listing keeps working without a geocoder key, so this only warns.
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    if settings.db_create_tables:
        try:
            await create_tables()
            logger.info("Database tables ready")
        except (SQLAlchemyError, OSError) as e:
            # /health reports the database as disconnected until it is reachable.
            logger.error("Could not create database tables: %s", str(e))

    logger.info(
        "Server running in %s mode on port %d",
        settings.environment,
        settings.backend_port,
    )
    logger.info("=" * 60)

    yield

    logger.info("DevCamper API shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(
    error: str,
    message: Any,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "error": error, "message": message}
    if details:
        body["details"] = details
    body["request_id"] = request_id_var.get("")
    return body


def _validation_messages(exc: RequestValidationError) -> List[str]:
    """One readable message per invalid body/path field."""
    messages = []
    for error in exc.errors():
        msg = str(error.get("msg", "Invalid value"))
        # Custom validators raise ValueError; pydantic prefixes their text.
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "path", "query")]
        if location and error.get("type") != "value_error":
            msg = f"{'.'.join(location)}: {msg}"
        messages.append(msg)
    return messages


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to status codes and the error envelope.

        ValidationError / RequestValidationError → 400
        DuplicateError                           → 400
        NotFoundError                            → 404
        GeocoderError / CircuitBreakerOpenError  → 503 (+ Retry-After)
        DatabaseError                            → 500 (generic message)
        DevCamperError / Exception               → 500 (generic message)
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        messages = _validation_messages(exc)
        logger.warning("[%s] Invalid request: %s", request_id_var.get(""), "; ".join(messages))
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", messages),
        )

    @app.exception_handler(DuplicateError)
    async def handle_duplicate(request: Request, exc: DuplicateError):
        logger.warning("[%s] Duplicate value: %s", request_id_var.get(""), exc.context)
        return JSONResponse(
            status_code=400,
            content=_error_body("duplicate_value", exc.message),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", exc.message),
        )

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Geocoder circuit open: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=503,
            content=_error_body("service_unavailable", exc.message, {"recovery_time": exc.recovery_time}),
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(GeocoderError)
    async def handle_geocoder_error(request: Request, exc: GeocoderError):
        logger.error("[%s] Geocoder error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else {}
        return JSONResponse(
            status_code=503,
            content=_error_body("geocoder_error", exc.message),
            headers=headers,
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "Server Error"),
        )

    @app.exception_handler(DevCamperError)
    async def handle_app_error(request: Request, exc: DevCamperError):
        logger.error("[%s] Application error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "Server Error"),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body("internal_server_error", "Server Error"),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="DevCamper API",
        description=(
            "Bootcamp directory API: bootcamps and their courses with filtering, "
            "field selection, sorting, pagination and radius search."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Last added runs first: RequestID → Logging → GZip → CORS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(bootcamps.router)
    app.include_router(courses.router)
    app.include_router(health.router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn on the configured host/port."""
    uvicorn.run(
        "devcamper.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
    )
