"""
Moderation Status Model

Status lifecycle shared by every moderatable asset (photos, voice prompts).

    AUTO_APPROVED ──pipeline──> APPROVED | REJECTED
          │
        report
          v
    PENDING_REVIEW ──pipeline/reviewer──> REJECTED | ...

Only REJECTED removes an asset from read paths. New assets start as
AUTO_APPROVED and are servable immediately; the async pipeline catches
false negatives afterwards.
"""

import logging
from enum import Enum
from typing import Protocol

from sqlalchemy import and_

from photo_service.exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)


class ModerationStatus(str, Enum):
    """Moderation status values."""
    AUTO_APPROVED = "AUTO_APPROVED"    # Visible, not yet classified
    APPROVED = "APPROVED"              # Classified clean (or manually approved)
    REJECTED = "REJECTED"              # Removed from every read path
    PENDING_REVIEW = "PENDING_REVIEW"  # Reported, waiting for a human

    @property
    def is_servable(self) -> bool:
        return self is not ModerationStatus.REJECTED


class TransitionSource(str, Enum):
    """Who is asking for a status change."""
    PIPELINE = "pipeline"
    REPORT = "report"
    REVIEWER = "reviewer"


class Moderatable(Protocol):
    """Minimal interface the transition function works against."""

    def get_moderation_status(self) -> ModerationStatus: ...

    def set_moderation_status(self, status: ModerationStatus) -> None: ...

    def get_owner_id(self) -> int: ...


class ModeratableMixin:
    """
    Adapts a model with `moderation_status` / `user_id` columns to Moderatable.

    The column stores the enum value; conversion happens here so the rest of
    the code only sees ModerationStatus.
    """

    def get_moderation_status(self) -> ModerationStatus:
        return ModerationStatus(self.moderation_status)

    def set_moderation_status(self, status: ModerationStatus) -> None:
        self.moderation_status = status.value

    def get_owner_id(self) -> int:
        return self.user_id


# Targets each source may ever produce
_ALLOWED_TARGETS = {
    TransitionSource.PIPELINE: {ModerationStatus.APPROVED, ModerationStatus.REJECTED},
    TransitionSource.REPORT: {ModerationStatus.PENDING_REVIEW},
    TransitionSource.REVIEWER: set(ModerationStatus),
}


def transition(
    entity: Moderatable,
    target: ModerationStatus,
    source: TransitionSource,
) -> bool:
    """
    Apply a moderation status change.

    Args:
        entity: Any moderatable asset
        target: Requested status
        source: Who is requesting it

    Returns:
        True if the status changed, False if the request was a no-op
        for the entity's current state

    Raises:
        InvalidTransitionError: if the source can never set the target
    """
    if target not in _ALLOWED_TARGETS[source]:
        raise InvalidTransitionError(
            f"{source.value} may not set moderation status {target.value}"
        )

    current = entity.get_moderation_status()

    if source is not TransitionSource.REVIEWER:
        # Rejection is terminal unless a human overrides it
        if current is ModerationStatus.REJECTED:
            logger.debug(
                "Ignoring %s -> %s from %s: asset already rejected",
                current.value, target.value, source.value,
            )
            return False

        # A pending escalation is not cleared by the classifier
        if (
            source is TransitionSource.PIPELINE
            and current is ModerationStatus.PENDING_REVIEW
            and target is ModerationStatus.APPROVED
        ):
            logger.debug("Keeping PENDING_REVIEW over pipeline approval")
            return False

    if current is target:
        return False

    entity.set_moderation_status(target)
    logger.info(
        "Moderation status %s -> %s (source=%s, owner=%s)",
        current.value, target.value, source.value, entity.get_owner_id(),
    )
    return True


def visible_filter(model):
    """SQL clause for rows that may be served: live and not rejected."""
    return and_(
        model.is_deleted == False,  # noqa: E712
        model.moderation_status != ModerationStatus.REJECTED.value,
    )
