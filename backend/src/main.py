# pyright: reportMissingTypeStubs=false
"""
Practice Scheduling API

A FastAPI application exposing the scheduling engine of a therapy-practice
management platform.

Features:
- Effective availability and bookable slot queries
- Conflict-checked single and recurring appointments
- Priority waitlist offered freed slots
- SQLAlchemy persistence (SQLite by default, PostgreSQL in production) with Alembic migrations
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api import scheduling
from core.config import LOG_LEVEL

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Practice Scheduling API")
    # Schema is managed by Alembic: run `alembic upgrade head` from backend/ before starting
    yield
    logger.info("Shutting down Practice Scheduling API")


# Create FastAPI application
app = FastAPI(
    title="Practice Scheduling",
    description="Availability, booking and waitlist engine for therapy practices",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
    lifespan=lifespan,
)

# Include API routers
app.include_router(
    scheduling.router,
    prefix="/api",
    tags=["scheduling"],
    responses={
        400: {"description": "Bad request"},
        404: {"description": "Resource not found"},
        409: {"description": "Scheduling conflict"},
        500: {"description": "Internal server error"},
    },
)


@app.get(
    "/health",
    summary="Health check",
    description="Returns the health status of the API",
)
async def health_check() -> dict[str, str]:
    """Check if the API is healthy and responding."""
    return {"status": "healthy"}


# Global exception handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions globally."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": "internal_error"},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle ValueError exceptions."""
    logger.warning(f"ValueError: {exc}")
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "type": "validation_error"},
    )
