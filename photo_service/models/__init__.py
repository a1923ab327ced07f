"""
Database Models

SQLAlchemy ORM models for the photo service.
"""

from photo_service.models.moderation import ModerationStatus, TransitionSource, transition
from photo_service.models.photo import Photo, PrivacyLevel
from photo_service.models.voice_prompt import VoicePrompt
from photo_service.models.report import ModerationReport
from photo_service.models.verification import VerificationAttempt

__all__ = [
    "ModerationStatus",
    "TransitionSource",
    "transition",
    "Photo",
    "PrivacyLevel",
    "VoicePrompt",
    "ModerationReport",
    "VerificationAttempt",
]
