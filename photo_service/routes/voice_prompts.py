"""
Voice Prompt Routes

Upload, playback and reporting of profile voice prompts.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status

from photo_service.deps import get_current_user_id, get_report_service, get_voice_prompt_service
from photo_service.exceptions import PhotoServiceError
from photo_service.models.report import AssetKind
from photo_service.routes.errors import to_http
from photo_service.schemas import ReportCreate, ReportResponse, VoicePromptResponse
from photo_service.services.reports import ReportService
from photo_service.services.voice_prompts import VoicePromptService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/voice-prompts", tags=["voice-prompts"])


@router.post("", response_model=VoicePromptResponse, status_code=status.HTTP_201_CREATED)
async def upload_voice_prompt(
    audio: Annotated[UploadFile, File(description="Voice clip (m4a, aac, mp3)")],
    duration_seconds: Annotated[float, Form()],
    user_id: int = Depends(get_current_user_id),
    service: VoicePromptService = Depends(get_voice_prompt_service),
) -> VoicePromptResponse:
    """
    Upload or replace the caller's voice prompt.

    The clip is visible right away and moderated in the background.
    """
    content = await audio.read()
    try:
        prompt = await service.upload(user_id, content, audio.content_type, duration_seconds)
    except PhotoServiceError as e:
        raise to_http(e) from e
    return VoicePromptResponse.model_validate(prompt)


@router.get("/me/meta", response_model=VoicePromptResponse)
async def get_my_voice_prompt_meta(
    user_id: int = Depends(get_current_user_id),
    service: VoicePromptService = Depends(get_voice_prompt_service),
) -> VoicePromptResponse:
    """Metadata of the caller's voice prompt."""
    return await _meta(service, user_id)


@router.get("/me")
async def get_my_voice_prompt(
    user_id: int = Depends(get_current_user_id),
    service: VoicePromptService = Depends(get_voice_prompt_service),
) -> Response:
    """Stream the caller's own voice prompt."""
    return await _audio(service, user_id)


@router.get("/user/{owner_id}/meta", response_model=VoicePromptResponse)
async def get_user_voice_prompt_meta(
    owner_id: int,
    _: int = Depends(get_current_user_id),
    service: VoicePromptService = Depends(get_voice_prompt_service),
) -> VoicePromptResponse:
    """Metadata of another user's voice prompt."""
    return await _meta(service, owner_id)


@router.get("/user/{owner_id}")
async def get_user_voice_prompt(
    owner_id: int,
    _: int = Depends(get_current_user_id),
    service: VoicePromptService = Depends(get_voice_prompt_service),
) -> Response:
    """Stream another user's voice prompt."""
    return await _audio(service, owner_id)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def delete_voice_prompt(
    user_id: int = Depends(get_current_user_id),
    service: VoicePromptService = Depends(get_voice_prompt_service),
):
    """Delete the caller's voice prompt."""
    try:
        await service.delete(user_id)
    except PhotoServiceError as e:
        raise to_http(e) from e


@router.post(
    "/{voice_prompt_id}/report",
    response_model=ReportResponse,
    status_code=status.HTTP_201_CREATED,
)
async def report_voice_prompt(
    voice_prompt_id: int,
    request: ReportCreate,
    user_id: int = Depends(get_current_user_id),
    reports: ReportService = Depends(get_report_service),
) -> ReportResponse:
    """Report another user's voice prompt for review."""
    try:
        report = await reports.create_report(
            user_id, AssetKind.VOICE_PROMPT, voice_prompt_id, request.reason, request.description
        )
    except PhotoServiceError as e:
        raise to_http(e) from e
    return ReportResponse.model_validate(report)


async def _meta(service: VoicePromptService, owner_id: int) -> VoicePromptResponse:
    prompt = await service.get_servable(owner_id)
    if prompt is None:
        raise HTTPException(status_code=404, detail="No voice prompt found")
    return VoicePromptResponse.model_validate(prompt)


async def _audio(service: VoicePromptService, owner_id: int) -> Response:
    try:
        prompt, data = await service.load_audio(owner_id)
    except PhotoServiceError as e:
        raise to_http(e) from e
    return Response(content=data, media_type=prompt.mime_type)
