"""
Privacy Resolver

Decides what a viewer gets for a photo: the original, the degraded
(blurred) variant, or nothing.

Decision order, first match wins:
    0. rejected asset                -> DENIED (owner included)
    1. no viewer identity            -> DEGRADED if available, else DENIED
    2. viewer is owner               -> ORIGINAL
    3. blocked in either direction   -> DENIED
    4. public                        -> ORIGINAL
    5. matched                       -> ORIGINAL
    6. otherwise                     -> DEGRADED if available, else DENIED
"""

import logging
from dataclasses import dataclass
from enum import Enum

from photo_service.exceptions import CollaboratorError
from photo_service.metrics import record_privacy_decision
from photo_service.models.moderation import ModerationStatus
from photo_service.models.photo import Photo, PrivacyLevel

logger = logging.getLogger(__name__)


class AccessOutcome(str, Enum):
    ORIGINAL = "original"
    DEGRADED = "degraded"
    DENIED = "denied"


@dataclass(frozen=True)
class AccessDecision:
    outcome: AccessOutcome
    rule: str  # short name of the rule that decided, for logs and metrics


class PrivacyResolver:
    """
    Resolves media access for one viewer.

    Collaborator failures never propagate: a failed block check denies
    access unless block_check_fail_open is set, a failed match check
    counts as "not matched".
    """

    def __init__(self, safety_client, matchmaking_client, block_check_fail_open: bool = False):
        self.safety = safety_client
        self.matchmaking = matchmaking_client
        self.block_check_fail_open = block_check_fail_open

    async def resolve(self, asset: Photo, viewer_id: int | None) -> AccessDecision:
        decision = await self._decide(asset, viewer_id)
        record_privacy_decision(decision.outcome.value, decision.rule)
        logger.info(
            "Access to photo %s by viewer %s: %s (%s)",
            asset.id, viewer_id, decision.outcome.value, decision.rule,
        )
        return decision

    async def _decide(self, asset: Photo, viewer_id: int | None) -> AccessDecision:
        if asset.get_moderation_status() is ModerationStatus.REJECTED:
            return AccessDecision(AccessOutcome.DENIED, "rejected")

        if viewer_id is None:
            return self._fallback(asset, "anonymous")

        owner_id = asset.get_owner_id()
        if viewer_id == owner_id:
            return AccessDecision(AccessOutcome.ORIGINAL, "owner")

        if await self._is_blocked(viewer_id, owner_id):
            return AccessDecision(AccessOutcome.DENIED, "blocked")

        if asset.privacy is PrivacyLevel.PUBLIC:
            return AccessDecision(AccessOutcome.ORIGINAL, "public")

        if await self._is_matched(viewer_id, owner_id):
            return AccessDecision(AccessOutcome.ORIGINAL, "matched")

        return self._fallback(asset, "not_matched")

    @staticmethod
    def _fallback(asset: Photo, rule: str) -> AccessDecision:
        if asset.has_degraded_variant:
            return AccessDecision(AccessOutcome.DEGRADED, rule)
        return AccessDecision(AccessOutcome.DENIED, rule)

    async def _is_blocked(self, viewer_id: int, owner_id: int) -> bool:
        try:
            return (
                await self.safety.is_blocked(viewer_id, owner_id)
                or await self.safety.is_blocked(owner_id, viewer_id)
            )
        except CollaboratorError as e:
            logger.warning(
                "Block check between %s and %s failed (%s), %s",
                viewer_id, owner_id, e,
                "allowing" if self.block_check_fail_open else "denying",
            )
            return not self.block_check_fail_open

    async def _is_matched(self, viewer_id: int, owner_id: int) -> bool:
        try:
            return await self.matchmaking.are_matched(viewer_id, owner_id)
        except CollaboratorError as e:
            logger.warning("Match check between %s and %s failed (%s)", viewer_id, owner_id, e)
            return False
