"""
Verification Engine

Biometric "is this the person in the profile photo" check.

The user submits a selfie; it is compared against their primary photo by
the face-comparison service and the similarity is bucketed:

    similarity >= 0.70  VERIFIED
    similarity >= 0.60  PENDING_REVIEW (borderline, a human decides)
    otherwise           REJECTED

Only REJECTED attempts burn the daily budget. Errors and rate-limited
requests are never persisted.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from photo_service.exceptions import CollaboratorError, StorageError
from photo_service.metrics import record_verification
from photo_service.models.moderation import visible_filter
from photo_service.models.photo import Photo
from photo_service.models.verification import VerificationAttempt, VerificationDecision

logger = logging.getLogger(__name__)

MSG_VERIFIED = "Verification successful! Your profile now has a verified badge."
MSG_PENDING = "Borderline similarity - queued for manual review"
MSG_REJECTED = "Face didn't match your profile photo. Please try again with better lighting."
MSG_NO_PHOTO = "No profile photo found. Please upload a profile photo first."
MSG_UNAVAILABLE = "Verification service temporarily unavailable. Please try again later."


@dataclass
class VerificationResult:
    decision: VerificationDecision
    similarity: float
    message: str
    attempt_id: int | None = None


@dataclass
class VerificationStatus:
    is_verified: bool
    last_attempt: VerificationAttempt | None
    attempts_remaining_today: int


class VerificationEngine:
    """
    Runs verification attempts for one request-scoped session.

    The budget is check-then-write: two concurrent requests from the same
    user can both pass the check. Accepted at current volumes.
    """

    def __init__(
        self,
        session: AsyncSession,
        storage,
        face_client,
        max_rejections_per_day: int = 3,
        verified_threshold: float = 0.70,
        pending_threshold: float = 0.60,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.session = session
        self.storage = storage
        self.face_client = face_client
        self.max_rejections_per_day = max_rejections_per_day
        self.verified_threshold = verified_threshold
        self.pending_threshold = pending_threshold
        self.clock = clock

    def decide(self, similarity: float) -> VerificationDecision:
        """Bucket a similarity score (lower bounds inclusive)."""
        if similarity >= self.verified_threshold:
            return VerificationDecision.VERIFIED
        if similarity >= self.pending_threshold:
            return VerificationDecision.PENDING_REVIEW
        return VerificationDecision.REJECTED

    @property
    def rate_limit_message(self) -> str:
        return (
            f"Maximum {self.max_rejections_per_day} verification attempts per day. "
            "Try again tomorrow."
        )

    async def verify(self, user_id: int, selfie: bytes) -> VerificationResult:
        """Run one verification attempt for user_id."""
        profile_photo = await self._primary_photo(user_id)
        if profile_photo is None:
            logger.info(f"Verification for user {user_id}: no profile photo")
            return self._unpersisted(VerificationDecision.REJECTED, MSG_NO_PHOTO)

        rejections = await self.count_rejections_today(user_id)
        if rejections >= self.max_rejections_per_day:
            logger.info(f"Verification for user {user_id}: rate limited ({rejections} rejections today)")
            return self._unpersisted(VerificationDecision.RATE_LIMITED, self.rate_limit_message)

        try:
            reference = await asyncio.to_thread(self.storage.download_file, profile_photo.s3_key)
            comparison = await self.face_client.verify(selfie, reference)
        except (StorageError, CollaboratorError) as e:
            logger.error(f"Verification for user {user_id} failed: {e}")
            return self._unpersisted(VerificationDecision.ERROR, MSG_UNAVAILABLE)

        similarity = min(1.0, max(0.0, 1.0 - comparison.distance))
        decision = self.decide(similarity)
        reason = {
            VerificationDecision.PENDING_REVIEW: MSG_PENDING,
            VerificationDecision.REJECTED: MSG_REJECTED,
        }.get(decision)

        attempt = VerificationAttempt(
            user_id=user_id,
            profile_photo_id=profile_photo.id,
            similarity_score=similarity,
            decision=decision.value,
            rejection_reason=reason,
            anti_spoofing_passed=comparison.facial_area_detected,
            created_at=self.clock(),
        )
        self.session.add(attempt)
        await self.session.flush()

        record_verification(decision.value, similarity)
        logger.info(
            f"Verification for user {user_id}: {decision.value} "
            f"(similarity={similarity:.3f}, attempt={attempt.id})"
        )
        return VerificationResult(decision, similarity, reason or MSG_VERIFIED, attempt.id)

    async def count_rejections_today(self, user_id: int) -> int:
        """REJECTED attempts since midnight UTC."""
        start_of_day = self.clock().replace(hour=0, minute=0, second=0, microsecond=0)
        count = await self.session.scalar(
            select(func.count(VerificationAttempt.id)).where(
                VerificationAttempt.user_id == user_id,
                VerificationAttempt.decision == VerificationDecision.REJECTED.value,
                VerificationAttempt.created_at >= start_of_day,
                VerificationAttempt.created_at < start_of_day + timedelta(days=1),
            )
        )
        return count or 0

    async def get_status(self, user_id: int) -> VerificationStatus:
        """Verified flag, latest attempt and remaining budget for a user."""
        last_attempt = await self.session.scalar(
            select(VerificationAttempt)
            .where(VerificationAttempt.user_id == user_id)
            .order_by(VerificationAttempt.created_at.desc(), VerificationAttempt.id.desc())
            .limit(1)
        )
        verified_id = await self.session.scalar(
            select(VerificationAttempt.id)
            .where(
                VerificationAttempt.user_id == user_id,
                VerificationAttempt.decision == VerificationDecision.VERIFIED.value,
            )
            .limit(1)
        )
        rejections = await self.count_rejections_today(user_id)
        return VerificationStatus(
            is_verified=verified_id is not None,
            last_attempt=last_attempt,
            attempts_remaining_today=max(0, self.max_rejections_per_day - rejections),
        )

    async def _primary_photo(self, user_id: int) -> Photo | None:
        return await self.session.scalar(
            select(Photo)
            .where(Photo.user_id == user_id, Photo.is_primary == True, visible_filter(Photo))  # noqa: E712
            .order_by(Photo.created_at.desc())
            .limit(1)
        )

    @staticmethod
    def _unpersisted(decision: VerificationDecision, message: str) -> VerificationResult:
        record_verification(decision.value)
        return VerificationResult(decision, 0.0, message, None)
