"""
Moderation Report Model

A user flagging another user's photo or voice prompt.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint

from photo_service.database import Base


class AssetKind(str, Enum):
    """Kinds of moderatable assets."""
    PHOTO = "photo"
    VOICE_PROMPT = "voice_prompt"


class ReportReason(str, Enum):
    """Report reason categories."""
    INAPPROPRIATE = "inappropriate"
    HARASSMENT = "harassment"
    SPAM = "spam"
    OTHER = "other"


class ReportStatus(str, Enum):
    """Report review status values."""
    PENDING = "pending"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"


class ModerationReport(Base):
    """
    User report model.

    Creating a report escalates the target asset to PENDING_REVIEW; the
    report itself is the trust & safety team's work item.
    """

    __tablename__ = "moderation_reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    asset_kind = Column(String(20), nullable=False)
    asset_id = Column(Integer, nullable=False, index=True)
    reporter_user_id = Column(Integer, nullable=False, index=True)
    target_user_id = Column(Integer, nullable=False, index=True)

    reason = Column(String(50), nullable=False)
    description = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default=ReportStatus.PENDING.value, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    reviewed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "reporter_user_id", "asset_kind", "asset_id", name="uq_moderation_reports_reporter_asset"
        ),
    )

    def __repr__(self):
        return f"<ModerationReport {self.id} {self.asset_kind}={self.asset_id} status={self.status}>"
