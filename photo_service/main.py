"""
Photo Service API

FastAPI application for profile photos, voice prompts, moderation and
face verification.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from photo_service import __version__
from photo_service.config import get_settings
from photo_service.database import close_db, init_db
from photo_service.routes import (
    health_router,
    moderation_router,
    photos_router,
    verification_router,
    voice_prompts_router,
)
from photo_service.worker import create_moderation_worker

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting Photo Service...")
    await init_db()
    logger.info("Database initialized")

    stop_event = asyncio.Event()
    moderation_task = None
    if settings.voice_moderation_enabled:
        worker = create_moderation_worker()
        moderation_task = asyncio.create_task(worker.run(stop_event))
        logger.info("Voice moderation worker started")

    yield

    # Shutdown
    logger.info("Shutting down Photo Service...")
    if moderation_task is not None:
        stop_event.set()
        await moderation_task
        logger.info("Voice moderation worker stopped")
    await close_db()
    logger.info("Database connections closed")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Profile photos, voice prompts, moderation and verification",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health_router)
app.include_router(photos_router, prefix=settings.api_prefix)
app.include_router(voice_prompts_router, prefix=settings.api_prefix)
app.include_router(verification_router, prefix=settings.api_prefix)
app.include_router(moderation_router, prefix=settings.api_prefix)

# Prometheus metrics endpoint
Instrumentator().instrument(app).expose(app, endpoint="/metrics")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "photo_service.main:app",
        host="0.0.0.0",
        port=8080,
        reload=settings.debug,
    )
