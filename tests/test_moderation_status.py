import pytest
from sqlalchemy import select

from photo_service.exceptions import InvalidTransitionError
from photo_service.models import Photo, VoicePrompt
from photo_service.models.moderation import (
    ModerationStatus,
    TransitionSource,
    transition,
    visible_filter,
)

AUTO = ModerationStatus.AUTO_APPROVED
APPROVED = ModerationStatus.APPROVED
REJECTED = ModerationStatus.REJECTED
PENDING = ModerationStatus.PENDING_REVIEW


def make_prompt(status=AUTO):
    return VoicePrompt(user_id=7, moderation_status=status.value)


def test_servable_statuses():
    assert AUTO.is_servable and APPROVED.is_servable and PENDING.is_servable
    assert not REJECTED.is_servable


def test_statuses_serialize_as_upper_case_names():
    assert [s.value for s in ModerationStatus] == [
        "AUTO_APPROVED", "APPROVED", "REJECTED", "PENDING_REVIEW",
    ]


@pytest.mark.parametrize("target", [APPROVED, REJECTED])
def test_pipeline_classifies_auto_approved(target):
    prompt = make_prompt()

    assert transition(prompt, target, TransitionSource.PIPELINE) is True
    assert prompt.get_moderation_status() is target
    assert prompt.moderation_status == target.value


def test_pipeline_reapproval_is_idempotent():
    prompt = make_prompt(APPROVED)

    assert transition(prompt, APPROVED, TransitionSource.PIPELINE) is False
    assert prompt.get_moderation_status() is APPROVED


def test_pipeline_cannot_unreject():
    prompt = make_prompt(REJECTED)

    assert transition(prompt, APPROVED, TransitionSource.PIPELINE) is False
    assert prompt.get_moderation_status() is REJECTED


def test_pipeline_approval_does_not_clear_pending_review():
    prompt = make_prompt(PENDING)

    assert transition(prompt, APPROVED, TransitionSource.PIPELINE) is False
    assert prompt.get_moderation_status() is PENDING


def test_pipeline_may_reject_pending_review():
    prompt = make_prompt(PENDING)

    assert transition(prompt, REJECTED, TransitionSource.PIPELINE) is True
    assert prompt.get_moderation_status() is REJECTED


@pytest.mark.parametrize("start", [AUTO, APPROVED])
def test_report_escalates_to_pending_review(start):
    prompt = make_prompt(start)

    assert transition(prompt, PENDING, TransitionSource.REPORT) is True
    assert prompt.get_moderation_status() is PENDING


def test_report_on_rejected_asset_is_noop():
    prompt = make_prompt(REJECTED)

    assert transition(prompt, PENDING, TransitionSource.REPORT) is False
    assert prompt.get_moderation_status() is REJECTED


@pytest.mark.parametrize("target", [REJECTED, APPROVED, AUTO])
def test_report_cannot_request_other_statuses(target):
    with pytest.raises(InvalidTransitionError):
        transition(make_prompt(), target, TransitionSource.REPORT)


@pytest.mark.parametrize("target", [AUTO, PENDING])
def test_pipeline_cannot_request_other_statuses(target):
    with pytest.raises(InvalidTransitionError):
        transition(make_prompt(), target, TransitionSource.PIPELINE)


def test_reviewer_can_reverse_rejection():
    prompt = make_prompt(REJECTED)

    assert transition(prompt, APPROVED, TransitionSource.REVIEWER) is True
    assert prompt.get_moderation_status() is APPROVED


def test_same_transition_applies_to_photos():
    photo = Photo(user_id=3, moderation_status=AUTO.value)

    assert transition(photo, PENDING, TransitionSource.REPORT) is True
    assert photo.get_owner_id() == 3
    assert photo.get_moderation_status() is PENDING


async def test_visible_filter_hides_rejected_and_deleted(session, add_photo):
    shown = await add_photo(moderation_status=AUTO.value)
    pending = await add_photo(moderation_status=PENDING.value)
    await add_photo(moderation_status=REJECTED.value)
    await add_photo(is_deleted=True)

    result = await session.scalars(select(Photo).where(visible_filter(Photo)).order_by(Photo.id))

    assert [p.id for p in result] == [shown.id, pending.id]
