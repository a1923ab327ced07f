"""
Photo Routes

Upload, listing and management of profile photos.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status

from photo_service.deps import (
    get_current_user_id,
    get_photo_service,
    get_viewer_id,
)
from photo_service.exceptions import PhotoServiceError
from photo_service.models.photo import Photo
from photo_service.routes.errors import to_http
from photo_service.schemas import (
    PhotoListResponse,
    PhotoResponse,
    PrivacyUpdate,
    ReorderRequest,
    UserMediaDeletionResponse,
)
from photo_service.services.photos import PhotoService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/photos", tags=["photos"])


def photo_to_response(photo: Photo) -> PhotoResponse:
    """Convert Photo model to response schema."""
    return PhotoResponse(
        id=photo.id,
        user_id=photo.user_id,
        original_filename=photo.original_filename,
        content_type=photo.content_type,
        width=photo.width,
        height=photo.height,
        privacy_level=photo.privacy_level,
        blur_intensity=photo.blur_intensity,
        quality_score=photo.quality_score,
        moderation_status=photo.moderation_status,
        display_order=photo.display_order,
        is_primary=photo.is_primary,
        has_blurred_version=photo.has_degraded_variant,
        created_at=photo.created_at,
    )


def photo_list(photos: list[Photo]) -> PhotoListResponse:
    return PhotoListResponse(photos=[photo_to_response(p) for p in photos], total=len(photos))


@router.post("", response_model=PhotoResponse, status_code=status.HTTP_201_CREATED)
async def upload_photo(
    file: Annotated[UploadFile, File(description="Photo to upload")],
    privacy_level: Annotated[str, Form()] = "public",
    is_primary: Annotated[bool, Form()] = False,
    blur_intensity: Annotated[float | None, Form()] = None,
    user_id: int = Depends(get_current_user_id),
    service: PhotoService = Depends(get_photo_service),
) -> PhotoResponse:
    """
    Upload a profile photo.

    Photos are validated for:
    - File type (JPEG, PNG, WebP)
    - File size
    - Per-user photo limit
    """
    content = await file.read()
    try:
        photo = await service.upload(
            user_id=user_id,
            filename=file.filename or "unknown",
            content_type=file.content_type,
            data=content,
            privacy_level=privacy_level,
            is_primary=is_primary,
            blur_intensity=blur_intensity,
        )
    except PhotoServiceError as e:
        raise to_http(e) from e
    return photo_to_response(photo)


@router.get("/me", response_model=PhotoListResponse)
async def list_my_photos(
    user_id: int = Depends(get_current_user_id),
    service: PhotoService = Depends(get_photo_service),
) -> PhotoListResponse:
    """List the caller's photos."""
    return photo_list(await service.list_visible(user_id))


@router.get("/user/{owner_id}", response_model=PhotoListResponse)
async def list_user_photos(
    owner_id: int,
    service: PhotoService = Depends(get_photo_service),
) -> PhotoListResponse:
    """List another user's photos (image access is resolved per photo)."""
    return photo_list(await service.list_visible(owner_id))


@router.delete("/user/{user_id}", response_model=UserMediaDeletionResponse)
async def delete_user_media(
    user_id: int,
    service: PhotoService = Depends(get_photo_service),
) -> UserMediaDeletionResponse:
    """
    Delete every photo and the voice prompt of a user.

    Service-to-service endpoint used by account deletion. Takes no caller
    identity.
    """
    deleted = await service.delete_all_for_user(user_id)
    return UserMediaDeletionResponse(
        user_id=user_id,
        photos_deleted=deleted.photos,
        voice_prompts_deleted=deleted.voice_prompts,
    )


@router.put("/reorder", response_model=PhotoListResponse)
async def reorder_photos(
    request: ReorderRequest,
    user_id: int = Depends(get_current_user_id),
    service: PhotoService = Depends(get_photo_service),
) -> PhotoListResponse:
    """Change the display order of the caller's photos."""
    try:
        photos = await service.reorder(user_id, request.order)
    except PhotoServiceError as e:
        raise to_http(e) from e
    return photo_list(photos)


@router.get("/{photo_id}", response_model=PhotoResponse)
async def get_photo(
    photo_id: int,
    service: PhotoService = Depends(get_photo_service),
) -> PhotoResponse:
    """Get photo details."""
    photo = await service.get_visible(photo_id)
    if photo is None:
        raise HTTPException(status_code=404, detail="Photo not found")
    return photo_to_response(photo)


@router.get("/{photo_id}/image")
async def get_photo_image(
    photo_id: int,
    viewer_id: int | None = Depends(get_viewer_id),
    service: PhotoService = Depends(get_photo_service),
) -> Response:
    """
    Serve a photo.

    Depending on privacy settings, blocks and matches the viewer gets the
    original, the blurred version, or 403.
    """
    try:
        image = await service.load_image(photo_id, viewer_id)
    except PhotoServiceError as e:
        raise to_http(e) from e
    return Response(
        content=image.data,
        media_type=image.content_type,
        headers={"X-Photo-Variant": image.outcome.value},
    )


@router.put("/{photo_id}/primary", response_model=PhotoResponse)
async def set_primary_photo(
    photo_id: int,
    user_id: int = Depends(get_current_user_id),
    service: PhotoService = Depends(get_photo_service),
) -> PhotoResponse:
    """Make a photo the caller's primary photo."""
    try:
        photo = await service.set_primary(photo_id, user_id)
    except PhotoServiceError as e:
        raise to_http(e) from e
    return photo_to_response(photo)


@router.put("/{photo_id}/privacy", response_model=PhotoResponse)
async def update_photo_privacy(
    photo_id: int,
    request: PrivacyUpdate,
    user_id: int = Depends(get_current_user_id),
    service: PhotoService = Depends(get_photo_service),
) -> PhotoResponse:
    """Change a photo's privacy level."""
    try:
        photo = await service.update_privacy(
            photo_id, user_id, request.privacy_level, request.blur_intensity
        )
    except PhotoServiceError as e:
        raise to_http(e) from e
    return photo_to_response(photo)


@router.delete("/{photo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_photo(
    photo_id: int,
    user_id: int = Depends(get_current_user_id),
    service: PhotoService = Depends(get_photo_service),
):
    """Delete one of the caller's photos."""
    try:
        await service.delete(photo_id, user_id)
    except PhotoServiceError as e:
        raise to_http(e) from e
    logger.info("Deleted photo %s", photo_id)
