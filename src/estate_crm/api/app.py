"""FastAPI application entry point with global error handling."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from estate_crm import __version__
from estate_crm.api.middleware import AuthGuardMiddleware, RequestLoggingMiddleware
from estate_crm.api.responses import error_response
from estate_crm.api.routes import (
    analytics,
    auth,
    commissions,
    health,
    leads,
    properties,
    users,
    visits,
)
from estate_crm.core.config import get_settings
from estate_crm.core.db import init_db, translate_db_error, validate_database
from estate_crm.core.exceptions import EstateCRMError
from estate_crm.core.logging_config import get_logger, setup_logging

LOGGER = get_logger(__name__)
SETTINGS = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Sets up logging, validates the database and creates missing tables.
    Startup is non-blocking: the app starts even if the database is not
    ready, so liveness checks still pass.
    """
    json_logging = SETTINGS.log_format == "json"
    setup_logging(level=SETTINGS.log_level, json_format=json_logging)

    LOGGER.info(
        "API application starting",
        extra={"extra_data": {
            "environment": SETTINGS.environment,
            "status_transition_mode": SETTINGS.status_transition_mode,
        }},
    )

    db_status = validate_database()
    if db_status["status"] == "error":
        LOGGER.error(
            "Database validation failed - app will start without database",
            extra={"extra_data": {"errors": db_status["errors"], "database_url": db_status["database_url"]}},
        )
    elif db_status["status"] == "missing_tables":
        LOGGER.warning(
            "Missing database tables detected - attempting to create",
            extra={"extra_data": {"missing": db_status["tables_missing"]}},
        )
        init_result = init_db(create_missing_only=True)
        if init_result["status"] == "error":
            LOGGER.error(
                "Failed to create missing tables",
                extra={"extra_data": {"error": init_result.get("error")}},
            )
        else:
            LOGGER.info(
                "Database tables created successfully",
                extra={"extra_data": {"created": init_result["tables_created"]}},
            )
    else:
        LOGGER.info(
            "Database validation passed",
            extra={"extra_data": {"tables_found": len(db_status["tables_found"])}},
        )

    yield
    LOGGER.info("API application shutting down")


def _first_validation_message(exc: RequestValidationError) -> str:
    """Render the first validation error as 'field: message'."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = str(first.get("msg", "Invalid value"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    if loc:
        return f"{'.'.join(loc)}: {message}"
    return message


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance with:
        - auth guard, request logging and CORS middleware
        - global exception handlers rendering the error envelope
        - all API routes
    """
    application = FastAPI(
        title="Estate CRM",
        description="Real-estate CRM API: properties, leads, visits and commissions",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # -------------------------------------------------------------------------
    # Middleware (last added runs first)
    # -------------------------------------------------------------------------
    application.add_middleware(AuthGuardMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=SETTINGS.get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Global Exception Handlers
    # -------------------------------------------------------------------------

    @application.exception_handler(EstateCRMError)
    async def app_error_handler(request: Request, exc: EstateCRMError) -> JSONResponse:
        """Render application errors with the status code they carry."""
        if exc.status_code >= 500:
            LOGGER.error(
                f"Application error: {exc}",
                exc_info=True,
                extra={"extra_data": {"path": request.url.path}},
            )
        else:
            LOGGER.warning(
                f"{type(exc).__name__}: {exc}",
                extra={"extra_data": {"path": request.url.path, "status_code": exc.status_code}},
            )
        return error_response(exc.message, exc.status_code)

    @application.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed bodies and query strings become 400 with the first error."""
        message = _first_validation_message(exc)
        LOGGER.warning(f"Validation error: {message}", extra={"extra_data": {"path": request.url.path}})
        return error_response(message, 400)

    @application.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return error_response(str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None))

    @application.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """Classify database failures by exception type."""
        error = translate_db_error(exc)
        LOGGER.error(
            f"Database error ({type(exc).__name__}) -> {error.status_code}",
            exc_info=error.status_code >= 500,
            extra={"extra_data": {"path": request.url.path}},
        )
        return error_response(error.message, error.status_code)

    @application.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        LOGGER.error(
            f"Unhandled error: {exc}",
            exc_info=True,
            extra={"extra_data": {"path": request.url.path}},
        )
        return error_response("Internal server error", 500)

    # -------------------------------------------------------------------------
    # Include Routers
    # -------------------------------------------------------------------------
    application.include_router(health.router, prefix="/health", tags=["Health"])
    application.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
    application.include_router(leads.router, prefix="/api/leads", tags=["Leads"])
    application.include_router(properties.router, prefix="/api/properties", tags=["Properties"])
    application.include_router(visits.router, prefix="/api/visits", tags=["Visits"])
    application.include_router(commissions.router, prefix="/api/commissions", tags=["Commissions"])
    application.include_router(analytics.router, prefix="/api/analytics", tags=["Analytics"])
    application.include_router(users.router, prefix="/api/users", tags=["Users"])

    return application


# Create the application instance
app = create_app()
