"""
API Routes

FastAPI routers for the photo service endpoints.
"""

from photo_service.routes.health import router as health_router
from photo_service.routes.moderation import router as moderation_router
from photo_service.routes.photos import router as photos_router
from photo_service.routes.verification import router as verification_router
from photo_service.routes.voice_prompts import router as voice_prompts_router

__all__ = [
    "health_router",
    "moderation_router",
    "photos_router",
    "verification_router",
    "voice_prompts_router",
]
