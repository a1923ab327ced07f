"""
Verification Routes

Selfie-based profile verification.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from photo_service.config import get_settings
from photo_service.deps import get_current_user_id, get_verification_engine
from photo_service.models.verification import VerificationDecision
from photo_service.pipeline.verification import VerificationEngine
from photo_service.schemas import (
    VerificationAttemptSummary,
    VerificationResponse,
    VerificationStatusResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/verification", tags=["verification"])
settings = get_settings()

_STATUS_CODES = {
    VerificationDecision.RATE_LIMITED: 429,
    VerificationDecision.ERROR: 503,
}


@router.post("/verify", response_model=VerificationResponse)
async def submit_verification(
    selfie: Annotated[UploadFile, File(description="Selfie taken in the app")],
    user_id: int = Depends(get_current_user_id),
    engine: VerificationEngine = Depends(get_verification_engine),
):
    """
    Compare a selfie against the caller's primary photo.

    200 for verified, pending and rejected outcomes; 429 when the daily
    budget is spent; 503 when the face service is unavailable.
    """
    content = await selfie.read()
    if not content:
        raise HTTPException(status_code=400, detail="No selfie provided")
    if len(content) > settings.max_selfie_size_mb * 1024 * 1024:
        raise HTTPException(
            status_code=400, detail=f"Selfie too large. Max size: {settings.max_selfie_size_mb}MB"
        )

    result = await engine.verify(user_id, content)
    body = VerificationResponse(
        decision=result.decision.value,
        similarity_score=result.similarity,
        message=result.message,
        attempt_id=result.attempt_id,
    )
    return JSONResponse(
        status_code=_STATUS_CODES.get(result.decision, 200),
        content=body.model_dump(),
    )


@router.get("/status", response_model=VerificationStatusResponse)
async def get_verification_status(
    user_id: int = Depends(get_current_user_id),
    engine: VerificationEngine = Depends(get_verification_engine),
) -> VerificationStatusResponse:
    """Verification state of the caller."""
    status = await engine.get_status(user_id)
    return VerificationStatusResponse(
        is_verified=status.is_verified,
        last_attempt=(
            VerificationAttemptSummary.model_validate(status.last_attempt)
            if status.last_attempt is not None
            else None
        ),
        attempts_remaining_today=status.attempts_remaining_today,
    )
