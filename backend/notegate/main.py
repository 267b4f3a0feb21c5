"""
NoteGate — FastAPI Application Factory
========================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn notegate.main:app).
When:  Once at server startup; the returned app handles all requests.

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                      FastAPI App                        │
    │                                                         │
    │  Middleware Chain:                                      │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────────┐  │
    │  │    Req ID    │→│Rate Limit│→│  Logging            │  │
    │  └──────────────┘ └──────────┘ └─────────────────────┘  │
    │                                                         │
    │  Routes:                                                │
    │  ┌──────────────────────────┐ ┌──────────────────────┐  │
    │  │ POST /<store>/<method>   │ │ GET /health          │  │
    │  │ GET  /<store>            │ │                      │  │
    │  └──────────────────────────┘ └──────────────────────┘  │
    │                                                         │
    │  Exception Handlers:                                    │
    │    gateway errors → 400 / 500                           │
    │    store errors   → 400 / 404 / 503                     │
    │    DatabaseError  → 500, anything else → 500            │
    └─────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration
    3. Create missing tables when DB_CREATE_ALL is set

    Shutdown:
    1. Dispose database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from notegate import __version__
from notegate.config import settings
from notegate.database import create_all_tables, dispose_engine
from notegate.exceptions import (
    DatabaseError,
    MethodNotFoundError,
    NoteGateError,
    ParameterDeserializationError,
    ParameterNamesUnavailableError,
    StoreNotFoundError,
    StoreSystemError,
    StoreUserError,
    ValidationError,
)
from notegate.middleware.logging import RequestLoggingMiddleware
from notegate.middleware.rate_limit import RateLimitMiddleware
from notegate.middleware.request_id import RequestIDMiddleware, request_id_var
from notegate.routes import health
from notegate.routes.stores import build_store_router
from notegate.services.store_accessor import STORE_VARIANTS

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the whole application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s on stdout.
    Called once during app startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries log every operation at DEBUG/INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: logging, config validation, tables. Shutdown: dispose the engine."""
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("NoteGate %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # The server keeps running so health checks can report the problem
        logger.error("Configuration error: %s", str(e))

    if settings.db_create_all:
        await create_all_tables()
        logger.info("Database tables ensured")

    logger.info("Mounted stores: %s", ", ".join(app.state.stores) or "(none)")
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("NoteGate shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "details": details,
            "request_id": request_id_var.get(""),
        },
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and error bodies.

    Handler table:
        MethodNotFoundError            → 400 method_not_found
        ParameterDeserializationError  → 400 parameter_deserialization
        ValidationError                → 400 validation_error
        ParameterNamesUnavailableError → 500 parameter_names_unavailable
        StoreUserError                 → 400 store_user_error
        StoreNotFoundError             → 404 store_not_found
        StoreSystemError               → 503 store_system_error
        DatabaseError                  → 500 server_error
        (429 rate_limit_exceeded is answered by RateLimitMiddleware)
        NoteGateError / Exception      → 500 internal_server_error

    Server-side failures return a generic message; their details are logged.
    """

    @app.exception_handler(MethodNotFoundError)
    async def handle_method_not_found(request: Request, exc: MethodNotFoundError):
        logger.warning("[%s] %s", request_id_var.get(""), exc.message)
        return _error_response(400, "method_not_found", exc.message, exc.context)

    @app.exception_handler(ParameterDeserializationError)
    async def handle_parameter_deserialization(
        request: Request, exc: ParameterDeserializationError
    ):
        logger.warning("[%s] %s", request_id_var.get(""), exc.message)
        return _error_response(400, "parameter_deserialization", exc.message, exc.context)

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(ParameterNamesUnavailableError)
    async def handle_parameter_names_unavailable(
        request: Request, exc: ParameterNamesUnavailableError
    ):
        logger.error("[%s] %s", request_id_var.get(""), exc.message)
        return _error_response(500, "parameter_names_unavailable", exc.message, exc.context)

    @app.exception_handler(StoreUserError)
    async def handle_store_user_error(request: Request, exc: StoreUserError):
        logger.info("[%s] Store rejected request: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "store_user_error", exc.message, exc.context)

    @app.exception_handler(StoreNotFoundError)
    async def handle_store_not_found(request: Request, exc: StoreNotFoundError):
        return _error_response(404, "store_not_found", exc.message, exc.context)

    @app.exception_handler(StoreSystemError)
    async def handle_store_system_error(request: Request, exc: StoreSystemError):
        logger.error("[%s] Store unavailable: %s", request_id_var.get(""), exc.message)
        headers = None
        if exc.rate_limit_duration:
            headers = {"Retry-After": str(exc.rate_limit_duration)}
        return _error_response(503, "store_system_error", exc.message, exc.context, headers)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | Context: %s",
            request_id_var.get(""), exc.message, exc.context,
        )
        return _error_response(
            500, "server_error", "An internal error occurred. Please try again later."
        )

    @app.exception_handler(NoteGateError)
    async def handle_notegate_error(request: Request, exc: NoteGateError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return _error_response(
            500, "internal_server_error", "An unexpected error occurred. Please try again."
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Store routes are mounted for each name in ENABLED_STORES; the mounted
    names are kept on app.state.stores for the health check.
    """
    app = FastAPI(
        title="NoteGate API",
        description=(
            "JSON gateway to note store operations. POST a JSON object to "
            "/<store>/<operation>; each field is decoded into the parameter of "
            "the same name."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → RateLimit → Logging → GZip → CORS
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
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.state.stores = []
    for name in settings.enabled_stores_list:
        app.include_router(build_store_router(STORE_VARIANTS[name]))
        app.state.stores.append(name)

    return app


app = create_app()
