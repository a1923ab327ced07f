"""
Route Dependencies

Caller identity and per-request service construction.

Authentication happens at the gateway, which forwards the caller's user id
in the X-User-Id header. A missing or unparseable header means the caller
is anonymous.
"""

import logging

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from photo_service.config import get_settings
from photo_service.database import get_db
from photo_service.pipeline.privacy import PrivacyResolver
from photo_service.pipeline.verification import VerificationEngine
from photo_service.services.face_compare import FaceComparisonClient
from photo_service.services.matchmaking import MatchmakingServiceClient
from photo_service.services.photos import PhotoService
from photo_service.services.reports import ReportService
from photo_service.services.safety import SafetyServiceClient
from photo_service.services.storage import get_storage_service
from photo_service.services.voice_prompts import VoicePromptService

logger = logging.getLogger(__name__)
settings = get_settings()


# ----------------------------
# Caller identity
# ----------------------------
async def get_viewer_id(x_user_id: str | None = Header(None)) -> int | None:
    """Caller's user id, or None for anonymous callers."""
    if x_user_id is None:
        return None
    try:
        user_id = int(x_user_id)
    except ValueError:
        logger.debug("Ignoring unparseable X-User-Id header")
        return None
    return user_id if user_id > 0 else None


async def get_current_user_id(viewer_id: int | None = Depends(get_viewer_id)) -> int:
    """Caller's user id; 401 when anonymous."""
    if viewer_id is None:
        raise HTTPException(status_code=401, detail="Unable to determine user identity")
    return viewer_id


# ----------------------------
# Collaborators
# ----------------------------
def get_storage():
    return get_storage_service()


def get_safety_client() -> SafetyServiceClient:
    return SafetyServiceClient()


def get_matchmaking_client() -> MatchmakingServiceClient:
    return MatchmakingServiceClient()


def get_face_client() -> FaceComparisonClient:
    return FaceComparisonClient()


def get_privacy_resolver(
    safety: SafetyServiceClient = Depends(get_safety_client),
    matchmaking: MatchmakingServiceClient = Depends(get_matchmaking_client),
) -> PrivacyResolver:
    return PrivacyResolver(
        safety, matchmaking, block_check_fail_open=settings.block_check_fail_open
    )


# ----------------------------
# Services
# ----------------------------
def get_photo_service(
    db: AsyncSession = Depends(get_db),
    storage=Depends(get_storage),
    resolver: PrivacyResolver = Depends(get_privacy_resolver),
) -> PhotoService:
    return PhotoService(db, storage, resolver=resolver)


def get_voice_prompt_service(
    db: AsyncSession = Depends(get_db),
    storage=Depends(get_storage),
) -> VoicePromptService:
    return VoicePromptService(db, storage)


def get_report_service(db: AsyncSession = Depends(get_db)) -> ReportService:
    return ReportService(db)


def get_verification_engine(
    db: AsyncSession = Depends(get_db),
    storage=Depends(get_storage),
    face_client: FaceComparisonClient = Depends(get_face_client),
) -> VerificationEngine:
    return VerificationEngine(
        db,
        storage,
        face_client,
        max_rejections_per_day=settings.verification_max_rejections_per_day,
        verified_threshold=settings.verification_verified_threshold,
        pending_threshold=settings.verification_pending_threshold,
    )
