"""
Voice Moderation Pipeline

Moderates one voice prompt: download, transcribe, scan, record.

Uploads are visible immediately as AUTO_APPROVED; this pipeline runs
afterwards and moves the clip to APPROVED or REJECTED. A clip that cannot
be transcribed is approved with a sentinel transcript.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from photo_service.exceptions import StorageError, TranscriptionError
from photo_service.metrics import moderation_in_progress, record_moderation_outcome
from photo_service.models.moderation import ModerationStatus, TransitionSource, transition
from photo_service.models.voice_prompt import TRANSCRIPTION_FAILED, VoicePrompt
from photo_service.pipeline.text_scanner import DEFAULT_RULES, Rule, scan_text

logger = logging.getLogger(__name__)


@dataclass
class ModerationResult:
    """Outcome of moderating one clip."""
    voice_prompt_id: int
    success: bool
    status: ModerationStatus | None = None
    violations: list[str] = field(default_factory=list)
    error: str | None = None


class VoiceModerationPipeline:
    """
    Moderation pipeline for voice prompts.

    Each call runs in its own session and commits only its own clip.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        storage,
        transcriber,
        rules: Sequence[Rule] = DEFAULT_RULES,
    ):
        self.session_factory = session_factory
        self.storage = storage
        self.transcriber = transcriber
        self.rules = rules

    async def moderate(self, voice_prompt_id: int) -> ModerationResult:
        """
        Moderate a single voice prompt.

        Never raises; failures are reported in the result and leave the
        clip unchanged.
        """
        moderation_in_progress.inc()
        try:
            result = await self._moderate(voice_prompt_id)
        except Exception as e:
            logger.exception(f"Voice prompt {voice_prompt_id} moderation failed")
            result = ModerationResult(voice_prompt_id, success=False, error=type(e).__name__)
        finally:
            moderation_in_progress.dec()

        if result.success:
            outcome = "rejected" if result.status is ModerationStatus.REJECTED else "approved"
        else:
            outcome = "error"
        record_moderation_outcome(outcome)
        return result

    async def _moderate(self, voice_prompt_id: int) -> ModerationResult:
        async with self.session_factory() as session:
            prompt = await session.scalar(
                select(VoicePrompt).where(VoicePrompt.id == voice_prompt_id)
            )
            if prompt is None or prompt.is_deleted:
                logger.warning(f"Voice prompt {voice_prompt_id} not found or deleted")
                return ModerationResult(voice_prompt_id, success=False, error="not_found")

            try:
                audio = await self._download(prompt.s3_key)
            except StorageError:
                logger.warning(f"Audio for voice prompt {voice_prompt_id} missing from storage")
                return ModerationResult(voice_prompt_id, success=False, error="audio_missing")

            violations: list[str] = []
            try:
                transcript = await self.transcriber.transcribe(audio)
            except TranscriptionError:
                logger.warning(
                    f"Transcription failed for voice prompt {voice_prompt_id}, approving"
                )
                prompt.transcript_text = TRANSCRIPTION_FAILED
                target = ModerationStatus.APPROVED
            else:
                prompt.transcript_text = transcript
                violations = scan_text(transcript, self.rules)
                target = ModerationStatus.REJECTED if violations else ModerationStatus.APPROVED

            transition(prompt, target, TransitionSource.PIPELINE)
            await session.commit()

            status = prompt.get_moderation_status()
            if violations:
                logger.warning(
                    f"Voice prompt {voice_prompt_id} (user {prompt.user_id}) "
                    f"flagged: {', '.join(violations)}"
                )
            else:
                logger.info(f"Voice prompt {voice_prompt_id} moderated: {status.value}")

            return ModerationResult(
                voice_prompt_id, success=True, status=status, violations=violations
            )

    async def _download(self, key: str) -> bytes:
        # boto3 is blocking
        return await asyncio.to_thread(self.storage.download_file, key)
