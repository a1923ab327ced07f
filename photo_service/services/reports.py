"""
Report Service

User reports and the manual review tools of the trust & safety team.

A report only escalates an asset to PENDING_REVIEW; it never hides it.
Removal is left to the pipeline or a reviewer.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from photo_service.exceptions import (
    AssetNotFoundError,
    DuplicateReportError,
    UploadValidationError,
)
from photo_service.models.moderation import (
    ModerationStatus,
    TransitionSource,
    transition,
    visible_filter,
)
from photo_service.models.photo import Photo
from photo_service.models.report import AssetKind, ModerationReport, ReportReason, ReportStatus
from photo_service.models.voice_prompt import VoicePrompt

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 500

_MODELS = {
    AssetKind.PHOTO: Photo,
    AssetKind.VOICE_PROMPT: VoicePrompt,
}


def _parse(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise UploadValidationError(f"Invalid {label} '{value}'. Allowed: {allowed}")


class ReportService:
    """Report and review operations for one request-scoped session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_report(
        self,
        reporter_id: int,
        asset_kind: str | AssetKind,
        asset_id: int,
        reason: str | ReportReason,
        description: str | None = None,
    ) -> ModerationReport:
        """
        File a report and escalate the asset for review.

        Raises:
            UploadValidationError: bad kind or reason, over-long description,
                or a report against the reporter's own asset
            AssetNotFoundError: the asset is not live
            DuplicateReportError: this reporter already reported the asset
        """
        kind = _parse(AssetKind, asset_kind, "asset kind")
        reason = _parse(ReportReason, reason, "reason")
        if description is not None and len(description) > MAX_DESCRIPTION_LENGTH:
            raise UploadValidationError(
                f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters"
            )

        model = _MODELS[kind]
        asset = await self.session.scalar(
            select(model).where(model.id == asset_id, visible_filter(model))
        )
        if asset is None:
            raise AssetNotFoundError(f"{kind.value} {asset_id} not found")

        owner_id = asset.get_owner_id()
        if owner_id == reporter_id:
            raise UploadValidationError("Cannot report your own content")

        existing = await self.session.scalar(
            select(ModerationReport.id).where(
                ModerationReport.reporter_user_id == reporter_id,
                ModerationReport.asset_kind == kind.value,
                ModerationReport.asset_id == asset_id,
            )
        )
        if existing is not None:
            raise DuplicateReportError(f"You have already reported this {kind.value}")

        report = ModerationReport(
            asset_kind=kind.value,
            asset_id=asset_id,
            reporter_user_id=reporter_id,
            target_user_id=owner_id,
            reason=reason.value,
            description=description,
            status=ReportStatus.PENDING.value,
        )
        self.session.add(report)
        transition(asset, ModerationStatus.PENDING_REVIEW, TransitionSource.REPORT)

        try:
            await self.session.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent identical report
            raise DuplicateReportError(f"You have already reported this {kind.value}") from e

        logger.info(
            f"Report {report.id}: user {reporter_id} reported {kind.value} {asset_id} "
            f"(owner {owner_id}) for {reason.value}"
        )
        return report

    async def list_reports(
        self,
        status: str | ReportStatus | None = None,
        asset_kind: str | AssetKind | None = None,
        limit: int = 100,
    ) -> list[ModerationReport]:
        """Reports, newest first."""
        query = select(ModerationReport)
        if status is not None:
            query = query.where(ModerationReport.status == _parse(ReportStatus, status, "status").value)
        if asset_kind is not None:
            query = query.where(
                ModerationReport.asset_kind == _parse(AssetKind, asset_kind, "asset kind").value
            )
        result = await self.session.scalars(
            query.order_by(ModerationReport.created_at.desc(), ModerationReport.id.desc()).limit(limit)
        )
        return list(result)

    async def review_report(self, report_id: int, status: str | ReportStatus) -> ModerationReport:
        """Close a report as reviewed or dismissed."""
        new_status = _parse(ReportStatus, status, "status")
        if new_status is ReportStatus.PENDING:
            raise UploadValidationError("A report can only be marked reviewed or dismissed")

        report = await self.session.get(ModerationReport, report_id)
        if report is None:
            raise AssetNotFoundError(f"Report {report_id} not found")

        report.status = new_status.value
        report.reviewed_at = datetime.utcnow()
        await self.session.flush()
        logger.info(f"Report {report_id} marked {new_status.value}")
        return report

    async def review_asset(
        self,
        asset_kind: str | AssetKind,
        asset_id: int,
        status: str | ModerationStatus,
        notes: str | None = None,
    ):
        """Manual moderation decision; may reverse a rejection."""
        kind = _parse(AssetKind, asset_kind, "asset kind")
        target = _parse(ModerationStatus, status, "moderation status")

        model = _MODELS[kind]
        asset = await self.session.scalar(
            select(model).where(model.id == asset_id, model.is_deleted == False)  # noqa: E712
        )
        if asset is None:
            raise AssetNotFoundError(f"{kind.value} {asset_id} not found")

        changed = transition(asset, target, TransitionSource.REVIEWER)
        if notes is not None and kind is AssetKind.PHOTO:
            asset.moderation_notes = notes
        await self.session.flush()

        logger.info(
            f"Manual review of {kind.value} {asset_id}: {target.value}"
            f"{'' if changed else ' (unchanged)'}"
        )
        return asset

    async def pending_review_queue(self, asset_kind: str | AssetKind, limit: int = 100) -> list:
        """Assets waiting for a human, oldest first."""
        kind = _parse(AssetKind, asset_kind, "asset kind")
        model = _MODELS[kind]
        result = await self.session.scalars(
            select(model)
            .where(
                model.moderation_status == ModerationStatus.PENDING_REVIEW.value,
                model.is_deleted == False,  # noqa: E712
            )
            .order_by(model.created_at, model.id)
            .limit(limit)
        )
        return list(result)
