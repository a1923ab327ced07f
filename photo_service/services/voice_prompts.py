"""
Voice Prompt Service

Upload and retrieval of the single voice clip a user shows on their profile.
"""

import asyncio
import hashlib
import logging
import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from photo_service.config import get_settings
from photo_service.exceptions import AssetNotFoundError, StorageError, UploadValidationError
from photo_service.models.moderation import ModerationStatus, visible_filter
from photo_service.models.voice_prompt import VoicePrompt

logger = logging.getLogger(__name__)
settings = get_settings()

_EXTENSIONS = {
    "audio/mp4": ".m4a",
    "audio/m4a": ".m4a",
    "audio/aac": ".aac",
    "audio/mpeg": ".mp3",
}


class VoicePromptService:
    """Voice prompt operations for one request-scoped session."""

    def __init__(self, session: AsyncSession, storage):
        self.session = session
        self.storage = storage

    async def upload(
        self,
        user_id: int,
        data: bytes,
        mime_type: str | None,
        duration_seconds: float,
    ) -> VoicePrompt:
        """
        Store a new voice prompt, replacing the user's current one.

        The duration is reported by the client and only range-checked.

        Raises:
            UploadValidationError: bad size, MIME type or duration
        """
        if not data:
            raise UploadValidationError("No audio file provided")
        if len(data) > settings.voice_max_size_bytes:
            raise UploadValidationError(
                f"File too large. Max {settings.voice_max_size_bytes // (1024 * 1024)}MB"
            )

        mime = (mime_type or "").lower()
        if mime not in settings.voice_allowed_mime_types:
            raise UploadValidationError(
                f"Invalid audio format. Allowed: {', '.join(settings.voice_allowed_mime_types)}"
            )

        min_s = settings.voice_min_duration_seconds
        max_s = settings.voice_max_duration_seconds
        if not min_s <= duration_seconds <= max_s:
            raise UploadValidationError(
                f"Duration must be between {min_s:g} and {max_s:g} seconds"
            )

        content_hash = hashlib.sha256(data).hexdigest()
        s3_key = f"voice-prompts/{user_id}/{uuid.uuid4().hex}{_EXTENSIONS.get(mime, '')}"
        await asyncio.to_thread(self.storage.upload_bytes, data, s3_key, mime)

        existing = await self._live(user_id)
        if existing is not None:
            existing.is_deleted = True
            existing.deleted_at = datetime.utcnow()
            # Clear the live-clip unique index before inserting the replacement
            await self.session.flush()
            logger.info(f"Replaced voice prompt {existing.id} for user {user_id}")

        prompt = VoicePrompt(
            user_id=user_id,
            s3_key=s3_key,
            file_size_bytes=len(data),
            duration_seconds=duration_seconds,
            mime_type=mime,
            content_hash=content_hash,
            moderation_status=ModerationStatus.AUTO_APPROVED.value,
        )
        self.session.add(prompt)
        await self.session.flush()

        logger.info(
            f"Voice prompt {prompt.id} uploaded for user {user_id} "
            f"({len(data)}B, {duration_seconds:g}s)"
        )
        return prompt

    async def get_servable(self, owner_id: int) -> VoicePrompt | None:
        """The user's live, non-rejected clip."""
        return await self.session.scalar(
            select(VoicePrompt)
            .where(VoicePrompt.user_id == owner_id, visible_filter(VoicePrompt))
            .order_by(VoicePrompt.created_at.desc())
            .limit(1)
        )

    async def load_audio(self, owner_id: int) -> tuple[VoicePrompt, bytes]:
        """
        Servable clip and its bytes.

        Raises:
            AssetNotFoundError: no servable clip, or its audio is missing
        """
        prompt = await self.get_servable(owner_id)
        if prompt is None:
            raise AssetNotFoundError(f"No voice prompt for user {owner_id}")
        try:
            data = await asyncio.to_thread(self.storage.download_file, prompt.s3_key)
        except StorageError as e:
            raise AssetNotFoundError(f"Audio for voice prompt {prompt.id} unavailable") from e
        return prompt, data

    async def delete(self, owner_id: int) -> None:
        """Soft delete the user's live clip."""
        prompt = await self._live(owner_id)
        if prompt is None:
            raise AssetNotFoundError(f"No voice prompt for user {owner_id}")
        prompt.is_deleted = True
        prompt.deleted_at = datetime.utcnow()
        await self.session.flush()
        logger.info(f"Deleted voice prompt {prompt.id} for user {owner_id}")

    async def _live(self, user_id: int) -> VoicePrompt | None:
        # Includes rejected clips: they still occupy the live slot
        return await self.session.scalar(
            select(VoicePrompt).where(
                VoicePrompt.user_id == user_id,
                VoicePrompt.is_deleted == False,  # noqa: E712
            )
        )
