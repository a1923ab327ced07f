"""
Moderation Routes

Photo reports and the trust & safety review tools.
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from photo_service.deps import get_current_user_id, get_report_service
from photo_service.exceptions import PhotoServiceError
from photo_service.models.report import AssetKind
from photo_service.routes.errors import to_http
from photo_service.schemas import (
    AssetReview,
    ModerationQueueItem,
    ReportCreate,
    ReportResponse,
    ReportReview,
)
from photo_service.services.reports import ReportService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/moderation", tags=["moderation"])


@router.post(
    "/photos/{photo_id}/report",
    response_model=ReportResponse,
    status_code=status.HTTP_201_CREATED,
)
async def report_photo(
    photo_id: int,
    request: ReportCreate,
    user_id: int = Depends(get_current_user_id),
    reports: ReportService = Depends(get_report_service),
) -> ReportResponse:
    """Report another user's photo for review."""
    try:
        report = await reports.create_report(
            user_id, AssetKind.PHOTO, photo_id, request.reason, request.description
        )
    except PhotoServiceError as e:
        raise to_http(e) from e
    return ReportResponse.model_validate(report)


@router.get("/reports", response_model=list[ReportResponse])
async def list_reports(
    report_status: str | None = Query(default=None, alias="status"),
    asset_kind: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    reports: ReportService = Depends(get_report_service),
) -> list[ReportResponse]:
    """List reports, newest first."""
    try:
        items = await reports.list_reports(report_status, asset_kind, limit)
    except PhotoServiceError as e:
        raise to_http(e) from e
    return [ReportResponse.model_validate(r) for r in items]


@router.put("/reports/{report_id}", response_model=ReportResponse)
async def review_report(
    report_id: int,
    request: ReportReview,
    reports: ReportService = Depends(get_report_service),
) -> ReportResponse:
    """Mark a report reviewed or dismissed."""
    try:
        report = await reports.review_report(report_id, request.status)
    except PhotoServiceError as e:
        raise to_http(e) from e
    return ReportResponse.model_validate(report)


@router.put("/{asset_kind}/{asset_id}/review", response_model=ModerationQueueItem)
async def review_asset(
    asset_kind: AssetKind,
    asset_id: int,
    request: AssetReview,
    reports: ReportService = Depends(get_report_service),
) -> ModerationQueueItem:
    """Manual moderation decision for a photo or voice prompt."""
    try:
        asset = await reports.review_asset(asset_kind, asset_id, request.status, request.notes)
    except PhotoServiceError as e:
        raise to_http(e) from e
    return ModerationQueueItem.model_validate(asset)


@router.get("/{asset_kind}/pending", response_model=list[ModerationQueueItem])
async def pending_review_queue(
    asset_kind: AssetKind,
    limit: int = Query(default=100, ge=1, le=500),
    reports: ReportService = Depends(get_report_service),
) -> list[ModerationQueueItem]:
    """Assets waiting for manual review, oldest first."""
    items = await reports.pending_review_queue(asset_kind, limit)
    return [ModerationQueueItem.model_validate(a) for a in items]
