"""
Clinic Dashboard — Operations API

FastAPI application behind the clinic dashboard: calls, appointments,
messages and support tickets for an AI-receptionist clinic.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.routers import appointments, auth, calls, dashboard, messages, tickets

# =============================================================================
# LOGGING
# =============================================================================

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


# =============================================================================
# LIFESPAN
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[no-untyped-def]
    """Application lifespan handler."""
    logger.info("Starting %s in %s mode", settings.app_name, settings.environment)
    logger.info("Calling API: %s", settings.retell_base_url)
    yield
    logger.info("Shutting down %s", settings.app_name)
    from app.services.dashboard import get_dashboard_registry
    from app.services.supabase import close_supabase

    await get_dashboard_registry().close_all()
    await close_supabase()


# =============================================================================
# APP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Clinic Dashboard — calls, appointments, messages and support tickets",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# =============================================================================
# MIDDLEWARE
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
    expose_headers=["Retry-After"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Log all requests for debugging."""
    logger.debug("%s %s", request.method, request.url.path)
    response = await call_next(request)
    return response


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# =============================================================================
# ROUTERS
# =============================================================================

app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
app.include_router(calls.router, prefix="/calls", tags=["Calls"])
app.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
app.include_router(messages.router, prefix="/messages", tags=["Messages"])
app.include_router(tickets.router, prefix="/support-tickets", tags=["Support Tickets"])


# =============================================================================
# ROOT / HEALTH
# =============================================================================


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"service": settings.app_name, "status": "ok"}


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check."""
    return {"status": "healthy", "service": settings.app_name}
