"""
UWF Journal REST API
====================

FastAPI application exposing the trading journal: trade lifecycle, account
dashboard, analytics and the AI intake dialog. Responses use the
``{"success", "data", "error", "timestamp"}`` envelope.

Usage:
    # Development
    uvicorn uwf_journal.api.main:get_app --factory --reload --port 8000

Environment Variables:
    UWF_DATA_DIR: Directory for the journal's JSON documents
    UWF_GEMINI_API_KEY (or API_KEY): Key for the AI intake service
    UWF_LOG_LEVEL / UWF_LOG_JSON: Logging configuration
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config.logging import clear_request_context, configure_logging, set_request_context
from ..config.settings import JournalSettings, get_settings
from ..core.errors import JournalError, ValidationError, create_error_response, wrap_exception
from .dependencies import Container
from .routers import register_routers
from .routers.base import get_timestamp

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

DEV_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
]


# =============================================================================
# Application Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the service container on startup and release it on shutdown."""
    logger.info("UWF Journal API starting up...")
    container: Container = app.state.container
    container.initialize()
    logger.info("UWF Journal API ready")

    yield

    logger.info("UWF Journal API shutting down...")
    container.close()


# =============================================================================
# Application Factory
# =============================================================================


def create_app(
    settings: Optional[JournalSettings] = None,
    container: Optional[Container] = None,
    setup_logging: bool = True,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Runtime settings (cached environment settings when omitted)
        container: Pre-built service container, e.g. with a test journal
        setup_logging: Configure the root logger from ``settings``
    """
    settings = settings or (container.settings if container and container.settings else get_settings())
    if setup_logging:
        configure_logging(
            level=settings.log_level,
            json_format=settings.log_json,
            environment=settings.environment,
            log_file=settings.log_file,
        )

    app = FastAPI(
        title="UWF Journal API",
        description="Trading journal: trade lifecycle, account ledger, analytics and AI intake",
        version=__version__,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "System", "description": "Health checks"},
            {"name": "Trades", "description": "Trade lifecycle, accounts and history"},
            {"name": "Analytics", "description": "Closed-trade performance"},
            {"name": "Intake", "description": "AI trade intake dialog"},
        ],
    )

    if container is None:
        container = Container(settings=settings)
    elif container.settings is None:
        container.settings = settings
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=DEV_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = set_request_context(request.headers.get(REQUEST_ID_HEADER))
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    register_routers(app)

    @app.exception_handler(JournalError)
    async def journal_error_handler(request: Request, exc: JournalError):
        """Render journal errors with their own HTTP status."""
        exc.log()
        return JSONResponse(
            status_code=exc.http_status,
            content=create_error_response(exc, debug_mode=settings.debug),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ())[1:]) or None
        error = ValidationError(field=field, detail=first.get("msg"))
        return JSONResponse(
            status_code=error.http_status,
            content=create_error_response(error, debug_mode=settings.debug),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "data": None,
                "error": exc.detail,
                "timestamp": get_timestamp(),
            },
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
        error = wrap_exception(exc)
        return JSONResponse(
            status_code=error.http_status,
            content=create_error_response(error, debug_mode=settings.debug),
        )

    return app


def get_app() -> FastAPI:
    """Factory entry point for ``uvicorn --factory``."""
    return create_app()
