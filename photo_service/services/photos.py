"""
Photo Service

Upload, listing, ordering and privacy management for profile photos.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from photo_service.config import get_settings
from photo_service.exceptions import (
    AccessDeniedError,
    AssetNotFoundError,
    StorageError,
    UploadValidationError,
)
from photo_service.models.moderation import ModerationStatus, visible_filter
from photo_service.models.photo import Photo, PrivacyLevel
from photo_service.models.voice_prompt import VoicePrompt
from photo_service.pipeline.privacy import AccessOutcome, PrivacyResolver
from photo_service.services.image_processing import ImageProcessor

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class ImageContent:
    """Bytes of the variant a viewer is allowed to see."""
    data: bytes
    content_type: str
    outcome: AccessOutcome


@dataclass
class UserMediaDeletion:
    """Rows removed by the account-deletion cascade."""
    photos: int
    voice_prompts: int


def parse_privacy_level(value: str | PrivacyLevel) -> PrivacyLevel:
    try:
        return PrivacyLevel(value)
    except ValueError:
        allowed = ", ".join(level.value for level in PrivacyLevel)
        raise UploadValidationError(f"Invalid privacy level '{value}'. Allowed: {allowed}")


def _check_blur_intensity(value: float):
    if not 0.0 <= value <= 1.0:
        raise UploadValidationError("Blur intensity must be between 0.0 and 1.0")


class PhotoService:
    """
    Photo operations for one request-scoped session.

    At most one live photo per user is primary. The flag is maintained
    here, not by a database constraint, and set_primary repairs a state
    with several primaries.
    """

    def __init__(
        self,
        session: AsyncSession,
        storage,
        image_processor: ImageProcessor | None = None,
        resolver: PrivacyResolver | None = None,
    ):
        self.session = session
        self.storage = storage
        self.image_processor = image_processor or ImageProcessor()
        self.resolver = resolver

    async def upload(
        self,
        user_id: int,
        filename: str,
        content_type: str | None,
        data: bytes,
        privacy_level: str | PrivacyLevel = PrivacyLevel.PUBLIC,
        is_primary: bool = False,
        blur_intensity: float | None = None,
    ) -> Photo:
        """
        Validate and store a new photo.

        Raises:
            UploadValidationError: bad extension, size, image, privacy level
                or the per-user photo limit reached
        """
        ext = Path(filename or "").suffix.lower()
        if ext not in settings.allowed_extensions:
            raise UploadValidationError(
                f"Invalid file type. Allowed: {', '.join(settings.allowed_extensions)}"
            )

        max_bytes = settings.max_upload_size_mb * 1024 * 1024
        if not data:
            raise UploadValidationError("File is empty")
        if len(data) > max_bytes:
            raise UploadValidationError(f"File too large. Max size: {settings.max_upload_size_mb}MB")

        level = parse_privacy_level(privacy_level)
        intensity = settings.default_blur_intensity if blur_intensity is None else blur_intensity
        _check_blur_intensity(intensity)

        live_count = await self.session.scalar(
            select(func.count(Photo.id)).where(Photo.user_id == user_id, Photo.is_deleted == False)  # noqa: E712
        )
        if live_count >= settings.max_photos_per_user:
            raise UploadValidationError(
                f"Maximum {settings.max_photos_per_user} photos allowed per user"
            )

        info = self.image_processor.inspect(data)
        quality = self.image_processor.quality_score(info.width, info.height, len(data), info.format)

        photo_key = uuid.uuid4().hex
        s3_key = f"photos/{user_id}/{photo_key}{ext}"
        await asyncio.to_thread(
            self.storage.upload_bytes, data, s3_key, content_type or "application/octet-stream"
        )

        blurred_key = None
        if level.requires_relationship:
            blurred_key = await self._store_blurred(user_id, photo_key, data, intensity)

        max_order = await self.session.scalar(
            select(func.max(Photo.display_order)).where(
                Photo.user_id == user_id, Photo.is_deleted == False  # noqa: E712
            )
        )

        photo = Photo(
            user_id=user_id,
            s3_key=s3_key,
            blurred_s3_key=blurred_key,
            original_filename=filename,
            content_type=content_type,
            file_size_bytes=len(data),
            width=info.width,
            height=info.height,
            privacy_level=level.value,
            blur_intensity=intensity if blurred_key else None,
            quality_score=quality,
            moderation_status=ModerationStatus.AUTO_APPROVED.value,
            display_order=(max_order or 0) + 1,
            is_primary=False,
        )
        self.session.add(photo)
        await self.session.flush()

        if is_primary or live_count == 0:
            await self.set_primary(photo.id, user_id)

        logger.info(
            f"Uploaded photo {photo.id} for user {user_id} "
            f"({info.width}x{info.height}, quality={quality}, privacy={level.value})"
        )
        return photo

    async def list_visible(self, owner_id: int) -> list[Photo]:
        """Servable photos of a user in display order (same for every viewer)."""
        result = await self.session.scalars(
            select(Photo)
            .where(Photo.user_id == owner_id, visible_filter(Photo))
            .order_by(Photo.display_order, Photo.id)
        )
        return list(result)

    async def get_visible(self, photo_id: int) -> Photo | None:
        return await self.session.scalar(
            select(Photo).where(Photo.id == photo_id, visible_filter(Photo))
        )

    async def set_primary(self, photo_id: int, owner_id: int) -> Photo:
        """Make a photo the owner's only primary photo."""
        photo = await self._get_owned(photo_id, owner_id)

        current = await self.session.scalars(
            select(Photo).where(Photo.user_id == owner_id, Photo.is_primary == True)  # noqa: E712
        )
        for other in current:
            other.is_primary = False
        photo.is_primary = True
        await self.session.flush()

        logger.info(f"Photo {photo_id} is now primary for user {owner_id}")
        return photo

    async def delete(self, photo_id: int, owner_id: int) -> None:
        """
        Soft delete a photo. A deleted primary hands the flag to the next
        photo in display order. Stored files are left for the purge job.
        """
        photo = await self.session.scalar(
            select(Photo).where(
                Photo.id == photo_id,
                Photo.user_id == owner_id,
                Photo.is_deleted == False,  # noqa: E712
            )
        )
        if photo is None:
            raise AssetNotFoundError(f"Photo {photo_id} not found")

        was_primary = photo.is_primary
        photo.is_deleted = True
        photo.is_primary = False
        photo.deleted_at = datetime.utcnow()
        await self.session.flush()

        if was_primary:
            successor = await self.session.scalar(
                select(Photo)
                .where(Photo.user_id == owner_id, visible_filter(Photo))
                .order_by(Photo.display_order, Photo.id)
                .limit(1)
            )
            if successor is not None:
                successor.is_primary = True
                await self.session.flush()
                logger.info(f"Photo {successor.id} promoted to primary for user {owner_id}")

        logger.info(f"Deleted photo {photo_id} for user {owner_id}")

    async def delete_all_for_user(self, user_id: int) -> UserMediaDeletion:
        """
        Account-deletion cascade: soft delete every live photo and the live
        voice prompt of a user. Rejected assets are included. Stored files
        are left for the purge job.

        Returns:
            Counts of rows that were soft deleted
        """
        now = datetime.utcnow()

        photos = list(await self.session.scalars(
            select(Photo).where(
                Photo.user_id == user_id,
                Photo.is_deleted == False,  # noqa: E712
            )
        ))
        for photo in photos:
            photo.is_deleted = True
            photo.is_primary = False
            photo.deleted_at = now

        prompts = list(await self.session.scalars(
            select(VoicePrompt).where(
                VoicePrompt.user_id == user_id,
                VoicePrompt.is_deleted == False,  # noqa: E712
            )
        ))
        for prompt in prompts:
            prompt.is_deleted = True
            prompt.deleted_at = now

        await self.session.flush()
        logger.info(
            f"Account cascade for user {user_id}: "
            f"{len(photos)} photos, {len(prompts)} voice prompts deleted"
        )
        return UserMediaDeletion(photos=len(photos), voice_prompts=len(prompts))

    async def update_privacy(
        self,
        photo_id: int,
        owner_id: int,
        privacy_level: str | PrivacyLevel,
        blur_intensity: float | None = None,
    ) -> Photo:
        """Change a photo's privacy level, generating a blurred variant if needed."""
        photo = await self._get_owned(photo_id, owner_id)
        level = parse_privacy_level(privacy_level)
        if blur_intensity is not None:
            _check_blur_intensity(blur_intensity)

        photo.privacy_level = level.value
        if level.requires_relationship and not photo.blurred_s3_key:
            intensity = blur_intensity if blur_intensity is not None else settings.default_blur_intensity
            try:
                original = await asyncio.to_thread(self.storage.download_file, photo.s3_key)
            except StorageError as e:
                raise AssetNotFoundError(f"Original of photo {photo_id} is missing") from e
            photo.blurred_s3_key = await self._store_blurred(
                owner_id, Path(photo.s3_key).stem, original, intensity
            )
            photo.blur_intensity = intensity
        elif blur_intensity is not None:
            photo.blur_intensity = blur_intensity

        await self.session.flush()
        logger.info(f"Photo {photo_id} privacy set to {level.value}")
        return photo

    async def reorder(self, owner_id: int, order: dict[int, int]) -> list[Photo]:
        """Apply new display positions ({photo_id: display_order})."""
        if any(position < 1 for position in order.values()):
            raise UploadValidationError("Display order must be positive")

        result = await self.session.scalars(
            select(Photo).where(
                Photo.user_id == owner_id, Photo.id.in_(list(order)), visible_filter(Photo)
            )
        )
        photos = {photo.id: photo for photo in result}
        missing = set(order) - set(photos)
        if missing:
            raise AssetNotFoundError(f"Photos not found: {sorted(missing)}")

        for photo_id, position in order.items():
            photos[photo_id].display_order = position
        await self.session.flush()

        return await self.list_visible(owner_id)

    async def load_image(self, photo_id: int, viewer_id: int | None) -> ImageContent:
        """
        Read the variant of a photo the viewer may see.

        Raises:
            AssetNotFoundError: no servable photo, or the variant is missing
            AccessDeniedError: the viewer may see neither variant
        """
        if self.resolver is None:
            raise RuntimeError("PhotoService.load_image needs a PrivacyResolver")

        photo = await self.get_visible(photo_id)
        if photo is None:
            raise AssetNotFoundError(f"Photo {photo_id} not found")

        decision = await self.resolver.resolve(photo, viewer_id)
        if decision.outcome is AccessOutcome.DENIED:
            raise AccessDeniedError(f"Access to photo {photo_id} denied")

        if decision.outcome is AccessOutcome.ORIGINAL:
            key, content_type = photo.s3_key, photo.content_type or "application/octet-stream"
        else:
            key, content_type = photo.blurred_s3_key, "image/jpeg"

        try:
            data = await asyncio.to_thread(self.storage.download_file, key)
        except StorageError as e:
            raise AssetNotFoundError(f"Photo {photo_id} ({decision.outcome.value}) unavailable") from e

        return ImageContent(data=data, content_type=content_type, outcome=decision.outcome)

    async def _get_owned(self, photo_id: int, owner_id: int) -> Photo:
        photo = await self.session.scalar(
            select(Photo).where(Photo.id == photo_id, Photo.user_id == owner_id, visible_filter(Photo))
        )
        if photo is None:
            raise AssetNotFoundError(f"Photo {photo_id} not found")
        return photo

    async def _store_blurred(self, user_id: int, photo_key: str, data: bytes, intensity: float) -> str:
        blurred = self.image_processor.blur(data, intensity)
        key = f"photos/{user_id}/blurred_{photo_key}.jpg"
        await asyncio.to_thread(self.storage.upload_bytes, blurred, key, "image/jpeg")
        return key
