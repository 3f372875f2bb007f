"""
FastAPI application entry point.
Sets up the API with lifespan events for store and Firebase initialization.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from app.config import settings
from app.database import build_store
from app.api.errors import register_exception_handlers
from app.api.router import api_router
from app.auth.firebase import initialize_firebase
from app.middleware.metrics_middleware import MetricsMiddleware
from app.storage.image_host import ImageHost
from app.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: Firebase Admin SDK, document store, image host
    - Shutdown: release the store
    """
    # Configure structured JSON logging
    configure_logging(settings.service_name, settings.log_level)

    # Firebase backs both token verification and Firestore.
    # Skip if not configured (local dev with the memory store)
    if settings.firebase_project_id:
        try:
            initialize_firebase()
        except ValueError as e:
            if settings.environment == "production":
                raise
            logger.warning(f"Firebase initialization failed: {e}")

    app.state.store = build_store(settings)
    app.state.image_host = ImageHost()
    if not app.state.image_host.is_configured:
        logger.warning("Image host (R2) not configured; uploads will fail")

    yield

    await app.state.store.close()


# Create FastAPI app
app = FastAPI(
    title="edit Aja API",
    description="Backend API for the edit Aja photo styling app",
    version="0.1.0",
    lifespan=lifespan
)

# CORS (web app and admin console)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request metrics; added after CORS so preflights are counted too
app.add_middleware(MetricsMiddleware)

register_exception_handlers(app)

# All routes live under /api
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "edit Aja API",
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
