import hashlib

import pytest
from sqlalchemy import select

from photo_service.exceptions import AssetNotFoundError, UploadValidationError
from photo_service.models import VoicePrompt
from photo_service.services.voice_prompts import VoicePromptService

USER = 9
AUDIO = b"\x00\x00\x00\x18ftypM4A voice"


@pytest.fixture
def service(session, storage):
    return VoicePromptService(session, storage)


async def test_upload_creates_auto_approved_clip(service, storage):
    prompt = await service.upload(USER, AUDIO, "audio/mp4", 12.5)

    assert prompt.moderation_status == "AUTO_APPROVED"
    assert prompt.content_hash == hashlib.sha256(AUDIO).hexdigest()
    assert prompt.file_size_bytes == len(AUDIO)
    assert prompt.s3_key.endswith(".m4a")
    assert storage.download_file(prompt.s3_key) == AUDIO


async def test_mime_type_is_case_insensitive(service):
    prompt = await service.upload(USER, AUDIO, "Audio/MPEG", 5)

    assert prompt.mime_type == "audio/mpeg"


@pytest.mark.parametrize("data, mime, duration", [
    (b"", "audio/mp4", 10),
    (b"x" * (2 * 1024 * 1024 + 1), "audio/mp4", 10),
    (AUDIO, "audio/wav", 10),
    (AUDIO, None, 10),
    (AUDIO, "audio/mp4", 2.9),
    (AUDIO, "audio/mp4", 30.1),
])
async def test_upload_validation(service, data, mime, duration):
    with pytest.raises(UploadValidationError):
        await service.upload(USER, data, mime, duration)


@pytest.mark.parametrize("duration", [3, 30])
async def test_duration_bounds_are_inclusive(service, duration):
    prompt = await service.upload(USER, AUDIO, "audio/aac", duration)

    assert prompt.duration_seconds == duration


async def test_upload_replaces_previous_clip(service, session):
    first = await service.upload(USER, AUDIO, "audio/mp4", 10)
    second = await service.upload(USER, AUDIO + b"2", "audio/mp4", 11)

    live = await session.scalars(
        select(VoicePrompt).where(VoicePrompt.user_id == USER, VoicePrompt.is_deleted == False)  # noqa: E712
    )
    assert [p.id for p in live] == [second.id]
    assert first.is_deleted is True
    assert first.deleted_at is not None


async def test_upload_replaces_rejected_clip(service, add_voice_prompt):
    rejected = await add_voice_prompt(user_id=USER, moderation_status="REJECTED")

    prompt = await service.upload(USER, AUDIO, "audio/mp4", 10)

    assert rejected.is_deleted is True
    assert prompt.moderation_status == "AUTO_APPROVED"


async def test_rejected_clip_is_not_served(service, add_voice_prompt):
    await add_voice_prompt(user_id=USER, moderation_status="REJECTED")

    assert await service.get_servable(USER) is None
    with pytest.raises(AssetNotFoundError):
        await service.load_audio(USER)


async def test_pending_review_clip_is_still_served(service, add_voice_prompt):
    prompt = await add_voice_prompt(user_id=USER, moderation_status="PENDING_REVIEW")

    served, data = await service.load_audio(USER)

    assert served.id == prompt.id
    assert data == b"fake-audio"


async def test_missing_audio_is_not_found(service, add_voice_prompt):
    await add_voice_prompt(user_id=USER, store_audio=False)

    with pytest.raises(AssetNotFoundError):
        await service.load_audio(USER)


async def test_delete(service, add_voice_prompt):
    prompt = await add_voice_prompt(user_id=USER)

    await service.delete(USER)

    assert prompt.is_deleted is True
    assert await service.get_servable(USER) is None
    with pytest.raises(AssetNotFoundError):
        await service.delete(USER)
