"""
Moderation, privacy and verification logic.
"""

from photo_service.pipeline.moderation_worker import ModerationWorker
from photo_service.pipeline.privacy import AccessDecision, AccessOutcome, PrivacyResolver
from photo_service.pipeline.text_scanner import DEFAULT_RULES, load_rule_set, scan_text
from photo_service.pipeline.verification import VerificationEngine, VerificationResult
from photo_service.pipeline.voice_moderation import ModerationResult, VoiceModerationPipeline

__all__ = [
    "ModerationWorker",
    "AccessDecision",
    "AccessOutcome",
    "PrivacyResolver",
    "DEFAULT_RULES",
    "load_rule_set",
    "scan_text",
    "VerificationEngine",
    "VerificationResult",
    "ModerationResult",
    "VoiceModerationPipeline",
]
