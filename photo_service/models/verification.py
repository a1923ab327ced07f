"""
Verification Attempt Model

One immutable row per completed biometric check.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, String

from photo_service.database import Base


class VerificationDecision(str, Enum):
    """Verification outcome values."""
    VERIFIED = "verified"
    PENDING_REVIEW = "pending_review"
    REJECTED = "rejected"
    RATE_LIMITED = "rate_limited"  # never persisted
    ERROR = "error"                # never persisted


class VerificationAttempt(Base):
    """
    Verification attempt model.

    Only VERIFIED, PENDING_REVIEW and REJECTED attempts are written.
    Rows are never updated after insert.
    """

    __tablename__ = "verification_attempts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    profile_photo_id = Column(Integer, nullable=False)

    similarity_score = Column(Float, nullable=False)
    decision = Column(String(20), nullable=False)
    rejection_reason = Column(String(500), nullable=True)
    anti_spoofing_passed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_verification_attempts_budget", "user_id", "decision", "created_at"),
    )

    def __repr__(self):
        return f"<VerificationAttempt {self.id} user={self.user_id} decision={self.decision}>"
