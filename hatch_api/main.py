"""
Hatch - FastAPI Application

Main entry point for the backend API: event discovery gated by
subscription tier, attendance tracking and manual payment review.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hatch_api.config.settings import settings
from hatch_api.infrastructure.exceptions import (
    ConflictError,
    ForbiddenError,
    HatchError,
    NotFoundError,
    PartialFailureError,
    ValidationError,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info(f"Hatch backend starting in {settings.environment} mode...")

    if settings.database_url or settings.supabase_password:
        try:
            from hatch_api.infrastructure.db.database import init_db
            await init_db()
            logger.info("Database connection pool initialized")
        except Exception as e:
            logger.warning(f"Database initialization skipped: {e}")

    yield

    if settings.database_url or settings.supabase_password:
        try:
            from hatch_api.infrastructure.db.database import close_db
            await close_db()
            logger.info("Database connection pool closed")
        except Exception as e:
            logger.warning(f"Database shutdown error: {e}")

    logger.info("Hatch backend shutting down...")


app = FastAPI(
    title="Hatch",
    description="Curated events, tiered subscriptions and attendance tracking",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS configuration from Settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    """Bad input, unknown tier or disallowed status change."""
    return JSONResponse(status_code=400, content=exc.to_dict())


@app.exception_handler(ForbiddenError)
async def forbidden_error_handler(request: Request, exc: ForbiddenError):
    return JSONResponse(status_code=403, content=exc.to_dict())


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content=exc.to_dict())


@app.exception_handler(ConflictError)
async def conflict_error_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content=exc.to_dict())


@app.exception_handler(PartialFailureError)
async def partial_failure_handler(request: Request, exc: PartialFailureError):
    """A multi-step change was rolled back."""
    logger.error(f"Rolled back: {exc.message} ({exc.details})")
    return JSONResponse(status_code=500, content=exc.to_dict())


@app.exception_handler(HatchError)
async def general_error_handler(request: Request, exc: HatchError):
    """Handle all other application errors."""
    logger.error(f"Unhandled application error: {exc.message}")
    return JSONResponse(status_code=500, content=exc.to_dict())


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "hatch"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Hatch API",
        "version": "1.0.0",
        "docs": "/docs",
    }


# ============================================================================
# Import and register routers
# ============================================================================

from hatch_api.api.routes import (  # noqa: E402
    admin,
    attendance,
    events,
    jobs,
    payments,
    profiles,
    subscriptions,
)

app.include_router(profiles.router, prefix="/api", tags=["Profiles"])
app.include_router(subscriptions.router, prefix="/api", tags=["Subscriptions"])
app.include_router(events.router, prefix="/api", tags=["Events"])
app.include_router(attendance.router, prefix="/api", tags=["Attendance"])
app.include_router(payments.router, prefix="/api", tags=["Payments"])
app.include_router(admin.router, prefix="/api", tags=["Admin"])
app.include_router(jobs.router, prefix="/api", tags=["Jobs"])
