"""
Dog Spotter Backend — FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds the services, registers middleware, exception
       handlers and routers, and returns the app.
Who:   uvicorn (`uvicorn dogspotter.main:app`) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware: RateLimit → RequestID → AccessLog → GZip    │
    │              → CORS                                      │
    │                                                          │
    │  Routes: /api/auth  /api/users  /api/dogs  /api/upload   │
    │          /api/files  /health                             │
    │                                                          │
    │  app.state: dog_service(predictor=MLService)             │
    │             auth_service  user_service  upload_service   │
    │                                                          │
    │  Errors: Validation→400  Auth→401  NotFound→404          │
    │          Duplicate→409   Upstream→503  Storage/DB→500    │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config check → storage dir → database probe
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from dogspotter import __version__
from dogspotter.config import settings
from dogspotter.database import dispose_engine, wait_for_database
from dogspotter.exceptions import (
    AuthenticationError,
    CircuitBreakerOpenError,
    DogSpotterError,
    DuplicateResourceError,
    FileStorageError,
    NotFoundError,
    NotFoundOrForbiddenError,
    UpstreamUnavailableError,
    ValidationError,
)
from dogspotter.middleware.logging import RequestLoggingMiddleware
from dogspotter.middleware.rate_limit import RateLimitMiddleware
from dogspotter.middleware.request_id import RequestIDMiddleware, request_id_var
from dogspotter.routes import auth, dogs, health, upload, users
from dogspotter.services.auth_service import AuthService
from dogspotter.services.breed_predictor import BreedPredictor
from dogspotter.services.dog_service import DogService
from dogspotter.services.ml_service import MLService
from dogspotter.services.upload_service import UploadService
from dogspotter.services.user_service import UserService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configures the root logger once at startup.

    Format: 2025-03-14T10:02:11 [INFO] dogspotter.services.dog_service: ...
    Output goes to stdout so the container runtime collects it.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx", "passlib"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Dog Spotter Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: /health and the logs make the problem visible
        logger.error("Configuration error: %s", str(e))

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())

    try:
        await wait_for_database()
        logger.info("Database reachable")
    except (SQLAlchemyError, OSError) as e:
        logger.error("Database unreachable after %d attempts: %s", settings.db_connect_attempts, str(e))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Dog Spotter Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {"error": error, "message": message}
    if details:
        content["details"] = details
    content["request_id"] = request_id_var.get("")
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Maps exception types to HTTP responses with the shared error envelope
    {"error", "message", "details"?, "request_id"}.

    Handler hierarchy:
        ValidationError           → 400
        AuthenticationError       → 401 (WWW-Authenticate: Bearer)
        NotFoundError             → 404
        NotFoundOrForbiddenError  → 404 (same answer for missing and not owned)
        DuplicateResourceError    → 409
        CircuitBreakerOpenError   → 503 (Retry-After)
        UpstreamUnavailableError  → 503
        FileStorageError          → 500
        SQLAlchemyError           → 500 (generic message, details logged)
        DogSpotterError / other   → 500

    Responses never include stack traces, SQL or file paths.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error(400, "validation_error", exc.message, details=exc.context)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return _error(
            401, "unauthorized", exc.message, headers={"WWW-Authenticate": "Bearer"}
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error(404, "not_found", exc.message)

    @app.exception_handler(NotFoundOrForbiddenError)
    async def handle_not_found_or_forbidden(request: Request, exc: NotFoundOrForbiddenError):
        logger.info("[%s] Ownership check failed: %s", request_id_var.get(""), exc.context)
        return _error(404, "not_found_or_forbidden", exc.message)

    @app.exception_handler(DuplicateResourceError)
    async def handle_duplicate(request: Request, exc: DuplicateResourceError):
        return _error(409, "conflict", exc.message, details=exc.context)

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.message)
        return _error(
            503,
            "service_unavailable",
            exc.message,
            details={"recovery_time": exc.recovery_time},
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(UpstreamUnavailableError)
    async def handle_upstream(request: Request, exc: UpstreamUnavailableError):
        logger.error("[%s] Upstream unavailable: %s | %s", request_id_var.get(""), exc.message, exc.context)
        return _error(503, "service_unavailable", exc.message)

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error("[%s] File storage error: %s | %s", request_id_var.get(""), exc.message, exc.context)
        return _error(500, "server_error", exc.message)

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request: Request, exc: SQLAlchemyError):
        logger.error("[%s] Database error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(DogSpotterError)
    async def handle_app_error(request: Request, exc: DogSpotterError):
        logger.error("[%s] Unhandled application error: %s | %s", request_id_var.get(""), exc.message, exc.context)
        return _error(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    predictor: Optional[BreedPredictor] = None,
    upload_service: Optional[UploadService] = None,
) -> FastAPI:
    """
    Assembles the application.

    Args:
        predictor:      Breed predictor for DogService; MLService by default.
        upload_service: Image storage; UploadService on STORAGE_ROOT by default.

    Services are attached to app.state here (not in the lifespan) so an app
    driven through httpx's ASGITransport, which skips the lifespan, is still
    fully wired.
    """
    app = FastAPI(
        title="Dog Spotter API",
        description=(
            "Lost and found dog registry: report sightings with a photo and a "
            "location, search them by text and distance, and browse them on a map."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Services ──────────────────────────────────────────────────────────
    app.state.dog_service = DogService(predictor=predictor or MLService())
    app.state.auth_service = AuthService()
    app.state.user_service = UserService()
    app.state.upload_service = upload_service or UploadService()

    # ── Middleware (last added runs first) ────────────────────────────────
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
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(dogs.router)
    app.include_router(upload.router)
    app.include_router(health.router)

    return app


app = create_app()
