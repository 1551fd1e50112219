"""
VCA Production Workflow
=======================
Review, assignment, production and posting of viral content analyses,
with authentication bridged to Authentik.

Built with: FastAPI + PostgreSQL + Authentik
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import get_settings
from app.core.correlation import (
    CORRELATION_ID_HEADER,
    REQUEST_ID_HEADER,
    bind_request_context,
    clear_request_context,
    get_correlation_id,
    get_request_id,
)
from app.core.database import async_session, init_db
from app.core.logging import get_logger, setup_logging
from app.domain.errors import WorkflowError
from app.schemas import HealthResponse
from app.services.storage_service import PUBLIC_PREFIX

# Import routers
from app.api.routes.auth import router as auth_router
from app.api.routes.admin_users import router as admin_users_router
from app.api.routes.admin import router as admin_router
from app.api.routes.editor import router as editor_router
from app.api.routes.videographer import router as videographer_router
from app.api.routes.posting import router as posting_router
from app.api.routes.analyses import router as analyses_router
from app.api.routes.files import router as files_router
from app.api.routes.config import router as config_router
from app.api.envelope import error_envelope, workflow_error_envelope

settings = get_settings()
logger = get_logger("main")

APP_VERSION = "1.0.0"
QUIET_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")

# Track uptime
_start_time = time.time()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup & shutdown lifecycle."""

    # ── Startup ──
    setup_logging(debug=settings.app_debug)
    logger.info("app_starting", app=settings.app_name, env=settings.app_env)

    await init_db()
    logger.info("database_initialized")

    logger.info("app_ready", port=settings.app_port)

    yield

    # ── Shutdown ──
    logger.info("app_shutdown")


# ── Create FastAPI App ──

app = FastAPI(
    title=settings.app_name,
    description=(
        "Production workflow for viral content analyses.\n\n"
        "Writers submit analyses, admins review and staff them, videographers "
        "and editors pick work from self-service queues, and posting managers "
        "publish the result."
    ),
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS Middleware ──

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Logging Middleware ──

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests with timing."""
    request_id, correlation_id = bind_request_context(
        request.headers.get(REQUEST_ID_HEADER),
        request.headers.get(CORRELATION_ID_HEADER),
    )
    start = time.time()
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        elapsed = round((time.time() - start) * 1000, 2)
        if response is not None:
            response.headers[REQUEST_ID_HEADER] = request_id
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            status_code = response.status_code
        else:
            status_code = 500

        if request.url.path not in QUIET_PATHS:
            logger.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=status_code,
                elapsed_ms=elapsed,
                request_id=get_request_id(),
                correlation_id=get_correlation_id(),
            )

        clear_request_context()


# ── Exception Handlers ──

@app.exception_handler(WorkflowError)
async def workflow_exception_handler(request: Request, exc: WorkflowError):
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "workflow_error",
        path=request.url.path,
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
    )
    return workflow_error_envelope(exc, meta={"path": request.url.path})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        detail=str(exc.detail),
    )
    return error_envelope(
        code="http_error",
        message=str(exc.detail) if isinstance(exc.detail, str) else "Request failed",
        status_code=exc.status_code,
        details=exc.detail,
        meta={"path": request.url.path},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("validation_error", path=request.url.path, errors=exc.errors())
    return error_envelope(
        code="validation_error",
        message="Validation failed",
        status_code=422,
        details=exc.errors(),
        meta={"path": request.url.path},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return error_envelope(
        code="internal_error",
        message="Internal server error",
        status_code=500,
        details="Internal server error. The team has been notified.",
        meta={"path": request.url.path},
    )


# ── Register Routers ──

app.include_router(auth_router, prefix="/api")
app.include_router(admin_users_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(editor_router, prefix="/api")
app.include_router(videographer_router, prefix="/api")
app.include_router(posting_router, prefix="/api")
app.include_router(analyses_router, prefix="/api")
app.include_router(files_router, prefix="/api")
app.include_router(config_router, prefix="/api")

# Voice notes are served read-only
Path(settings.voice_notes_dir).mkdir(parents=True, exist_ok=True)
app.mount(PUBLIC_PREFIX, StaticFiles(directory=settings.voice_notes_dir), name="voice-notes")


# ── Health Check ──

@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """System health check endpoint."""
    db_status = "healthy"
    try:
        async with async_session() as db:
            await db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        db_status = "unhealthy"
        logger.warning("health_db_unreachable", error=str(exc.__class__.__name__))

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        version=APP_VERSION,
        database=db_status,
        timestamp=datetime.now(timezone.utc),
    )


@app.get("/", tags=["System"])
async def root():
    return {
        "name": settings.app_name,
        "version": APP_VERSION,
        "uptime_seconds": int(time.time() - _start_time),
        "docs": "/docs",
        "health": "/health",
    }
