"""
Photo Model

Profile photos uploaded by users.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, String, Text

from photo_service.database import Base
from photo_service.models.moderation import ModeratableMixin, ModerationStatus


class PrivacyLevel(str, Enum):
    """Owner-chosen visibility policy."""
    PUBLIC = "public"
    PRIVATE = "private"
    MATCH_ONLY = "match_only"
    VIP = "vip"

    @property
    def requires_relationship(self) -> bool:
        """Whether non-owners need a match to see the original."""
        return self is not PrivacyLevel.PUBLIC


class Photo(ModeratableMixin, Base):
    """
    Uploaded photo model.

    Each photo tracks:
    - Storage keys for the original and (for non-public photos) a blurred variant
    - Privacy level and moderation status
    - Ordering and the primary flag (at most one live primary per user,
      maintained by PhotoService rather than the schema)
    """

    __tablename__ = "photos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)

    # File info
    s3_key = Column(Text, nullable=False)
    blurred_s3_key = Column(Text, nullable=True)
    original_filename = Column(String(255), nullable=False)
    content_type = Column(String(100), nullable=True)
    file_size_bytes = Column(Integer, nullable=False, default=0)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)

    # Privacy
    privacy_level = Column(String(20), default=PrivacyLevel.PUBLIC.value, nullable=False)
    blur_intensity = Column(Float, nullable=True)  # 0.0 to 1.0

    # Quality and moderation
    quality_score = Column(Integer, nullable=True)  # 0 to 100
    moderation_status = Column(
        String(20), default=ModerationStatus.AUTO_APPROVED.value, nullable=False, index=True
    )
    moderation_notes = Column(Text, nullable=True)

    # Ordering
    display_order = Column(Integer, nullable=False, default=1)
    is_primary = Column(Boolean, nullable=False, default=False)

    # Timestamps / soft delete
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_photos_user_ordering", "user_id", "is_deleted", "is_primary", "display_order"),
        Index("ix_photos_moderation_queue", "moderation_status", "is_deleted", "created_at"),
    )

    @property
    def privacy(self) -> PrivacyLevel:
        return PrivacyLevel(self.privacy_level)

    @property
    def has_degraded_variant(self) -> bool:
        return bool(self.blurred_s3_key)

    def __repr__(self):
        return f"<Photo {self.id} user={self.user_id} status={self.moderation_status}>"
