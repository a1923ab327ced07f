"""
Pydantic Schemas

Request/Response models for the API.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


# ============================================================================
# Photo Schemas
# ============================================================================

class PhotoResponse(BaseModel):
    """Photo summary."""
    id: int
    user_id: int
    original_filename: str
    content_type: str | None
    width: int | None
    height: int | None
    privacy_level: str
    blur_intensity: float | None
    quality_score: int | None
    moderation_status: str
    display_order: int
    is_primary: bool
    has_blurred_version: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class PhotoListResponse(BaseModel):
    """A user's servable photos."""
    photos: list[PhotoResponse]
    total: int


class UserMediaDeletionResponse(BaseModel):
    """Result of the account-deletion cascade."""
    user_id: int
    photos_deleted: int
    voice_prompts_deleted: int


class PrivacyUpdate(BaseModel):
    """Request to change a photo's privacy level."""
    privacy_level: str = Field(..., examples=["match_only"])
    blur_intensity: float | None = Field(default=None, ge=0.0, le=1.0)


class ReorderRequest(BaseModel):
    """New display positions keyed by photo id."""
    order: dict[int, int] = Field(..., examples=[{"12": 1, "15": 2}])


# ============================================================================
# Voice Prompt Schemas
# ============================================================================

class VoicePromptResponse(BaseModel):
    """Voice prompt metadata."""
    id: int
    user_id: int
    duration_seconds: float
    mime_type: str
    file_size_bytes: int
    moderation_status: str
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================================================
# Moderation Schemas
# ============================================================================

class ReportCreate(BaseModel):
    """Request to report an asset."""
    reason: str = Field(..., examples=["inappropriate"])
    description: str | None = Field(default=None, max_length=500)


class ReportResponse(BaseModel):
    """Report record."""
    id: int
    asset_kind: str
    asset_id: int
    reporter_user_id: int
    target_user_id: int
    reason: str
    description: str | None
    status: str
    created_at: datetime
    reviewed_at: datetime | None

    class Config:
        from_attributes = True


class ReportReview(BaseModel):
    """Request to close a report."""
    status: str = Field(..., examples=["reviewed", "dismissed"])


class AssetReview(BaseModel):
    """Manual moderation decision."""
    status: str = Field(..., examples=["APPROVED", "REJECTED"])
    notes: str | None = None


class ModerationQueueItem(BaseModel):
    """Asset waiting for manual review."""
    id: int
    user_id: int
    moderation_status: str
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================================================
# Verification Schemas
# ============================================================================

class VerificationResponse(BaseModel):
    """Outcome of a verification attempt."""
    decision: str
    similarity_score: float
    message: str
    attempt_id: int | None = None


class VerificationAttemptSummary(BaseModel):
    """Most recent verification attempt."""
    id: int
    decision: str
    similarity_score: float
    rejection_reason: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class VerificationStatusResponse(BaseModel):
    """Verification state of the caller."""
    is_verified: bool
    last_attempt: VerificationAttemptSummary | None
    attempts_remaining_today: int


# ============================================================================
# Health Schemas
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str
    services: dict[str, str] = {}
