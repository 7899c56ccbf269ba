"""
QuickNotes Backend: FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers;
       the lifespan builds the per-process Database and NoteService.
Who:   Loaded by uvicorn in every worker process (quicknotes.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Req ID      │→│ Logging  │→│  GZip           │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────────────┐ ┌──────────────────────┐  │
    │  │ /api/v1/notes (CRUD) │ │ /api/v1/ , /health   │  │
    │  └──────────────────────┘ └──────────────────────┘  │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ Validation→400 │ NotFound→404 │ Busy→503     │   │
    │  │ Service/Storage→500 │ anything else→500      │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle (per worker process):
    Startup:
    1. Configure logging
    2. Open the Database (PRAGMAs applied per connection)
    3. Create the schema if missing (serialized across workers)
    4. Store Database and NoteService on app.state

    Shutdown:
    1. Dispose the engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from quicknotes import __version__
from quicknotes.config import settings
from quicknotes.dao.note_dao import NoteDao
from quicknotes.database import Database
from quicknotes.exceptions import (
    EntityNotFoundError,
    QuickNotesError,
    ServiceUnavailableError,
    StorageBusyError,
    ValidationError,
)
from quicknotes.middleware.logging import RequestLoggingMiddleware
from quicknotes.middleware.request_id import (
    RequestIDMiddleware,
    RequestIdFilter,
    request_id_var,
)
from quicknotes.routes import health, notes
from quicknotes.services.note_service import NoteService

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "An internal error occurred. Please try again later."


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configures the root logger: one stdout handler, request ID on every line.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Our access log replaces uvicorn's
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    if not settings.db_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("QuickNotes Backend %s starting up...", __version__)

    database = Database.from_settings(settings)
    await database.create_schema()
    app.state.database = database
    app.state.note_service = NoteService(database, NoteDao())

    logger.info("Database: %s (journal_mode=%s)", settings.database_path, settings.db_journal_mode)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("QuickNotes Backend shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details=None) -> dict:
    body = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Maps exception types to HTTP status codes and the ErrorResponse shape.

    Handler hierarchy:
        ValidationError                            → 400 Bad Request
        RequestValidationError (FastAPI)           → 400 Bad Request
        EntityNotFoundError                        → 404 Not Found
        ServiceUnavailableError / StorageBusyError → 503 + Retry-After
        QuickNotesError (service, storage, base)   → 500, generic message
        Exception (fallback)                       → 500, generic message

    Storage details (SQL, file paths, driver messages) are logged server-side
    and never returned to the client.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error: %s", exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        # Only loc/msg: the raw error dicts may hold values that are not JSON-serializable
        errors = [
            {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
            for error in exc.errors()
        ]
        message = "; ".join(
            f"{'.'.join(error['loc'])}: {error['msg']}" for error in errors
        ) or "Invalid request"
        logger.warning("Request validation error: %s", message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", message, {"errors": errors}),
        )

    @app.exception_handler(EntityNotFoundError)
    async def handle_not_found(request: Request, exc: EntityNotFoundError):
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", exc.message),
        )

    async def handle_busy(request: Request, exc: QuickNotesError):
        retry_after = getattr(exc, "retry_after", 1)
        logger.warning("Store busy: %s", exc.message)
        return JSONResponse(
            status_code=503,
            content=_error_body(
                "service_unavailable",
                "The service is temporarily busy. Please retry.",
            ),
            headers={"Retry-After": str(retry_after)},
        )

    app.add_exception_handler(ServiceUnavailableError, handle_busy)
    app.add_exception_handler(StorageBusyError, handle_busy)

    @app.exception_handler(QuickNotesError)
    async def handle_server_error(request: Request, exc: QuickNotesError):
        logger.error(
            "%s: %s | Context: %s",
            type(exc).__name__,
            exc.message,
            exc.context,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", GENERIC_SERVER_ERROR),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", exc, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=_error_body("internal_server_error", GENERIC_SERVER_ERROR),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="QuickNotes API",
        description="Create, page through, update and delete free-text notes.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → routes
    app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_minimum_size)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(notes.router)
    app.include_router(health.router)

    return app


app = create_app()
