"""
FastAPI application entry point.
Sets up the API with lifespan events for database initialization.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from wallvault.config import settings
from wallvault.database import init_db
from wallvault.api.router import api_router
from wallvault.middleware.metrics_middleware import MetricsMiddleware
from wallvault.storage.exceptions import StorageConfigError, StorageError
from wallvault.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: configure logging, create tables
    """
    # Configure structured JSON logging
    configure_logging('wallvault-api', settings.log_level)

    await init_db()

    if not settings.supabase_jwt_secret:
        if settings.environment == "production":
            raise RuntimeError("SUPABASE_JWT_SECRET must be set in production")
        logger.warning("SUPABASE_JWT_SECRET not set, authenticated routes will fail")

    yield


# Create FastAPI app
app = FastAPI(
    title="Wallvault API",
    description="Backend API for the Wallvault wallpaper marketplace",
    version="0.1.0",
    lifespan=lifespan
)

# CORS middleware (for the web frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Metrics middleware (must be after CORS to track all requests)
app.add_middleware(MetricsMiddleware)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.exception_handler(StorageConfigError)
async def storage_config_error_handler(request: Request, exc: StorageConfigError):
    """R2 is not configured: the feature is unavailable, not broken."""
    logger.error(f"Storage not configured: {exc}")
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    """R2 answered with an error or timed out."""
    logger.error(f"Storage error on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": "Storage request failed"})


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Wallvault API",
        "version": "0.1.0",
        "environment": settings.environment
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
