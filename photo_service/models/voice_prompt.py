"""
Voice Prompt Model

Short recorded voice clips shown on a profile. One live clip per user.
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    text,
)

from photo_service.database import Base
from photo_service.models.moderation import ModeratableMixin, ModerationStatus

# Written to transcript_text when speech-to-text fails
TRANSCRIPTION_FAILED = "[transcription-failed]"


class VoicePrompt(ModeratableMixin, Base):
    """
    Voice prompt model.

    Created AUTO_APPROVED on upload; the moderation worker fills in the
    transcript and moves it to APPROVED or REJECTED.
    """

    __tablename__ = "voice_prompts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)

    # File info
    s3_key = Column(Text, nullable=False)
    file_size_bytes = Column(BigInteger, nullable=False)
    duration_seconds = Column(Float, nullable=False)
    mime_type = Column(String(50), nullable=False, default="audio/mp4")
    content_hash = Column(String(64), nullable=True)  # SHA-256 hex

    # Moderation
    moderation_status = Column(
        String(20), default=ModerationStatus.AUTO_APPROVED.value, nullable=False, index=True
    )
    transcript_text = Column(Text, nullable=True)

    # Timestamps / soft delete
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.utcnow)
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "duration_seconds >= 3 AND duration_seconds <= 30",
            name="ck_voice_prompts_duration_range",
        ),
        CheckConstraint("file_size_bytes > 0", name="ck_voice_prompts_file_size_positive"),
        # At most one live clip per user
        Index(
            "ux_voice_prompts_live_user",
            "user_id",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = 0"),
        ),
        Index("ix_voice_prompts_moderation_queue", "moderation_status", "is_deleted", "created_at"),
    )

    def __repr__(self):
        return f"<VoicePrompt {self.id} user={self.user_id} status={self.moderation_status}>"
