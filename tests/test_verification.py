from datetime import datetime, timedelta

import httpx
import pytest
from sqlalchemy import func, select

from photo_service.exceptions import CollaboratorError
from photo_service.models import VerificationAttempt
from photo_service.models.verification import VerificationDecision
from photo_service.pipeline.verification import (
    MSG_NO_PHOTO,
    MSG_UNAVAILABLE,
    MSG_VERIFIED,
    VerificationEngine,
)
from photo_service.services.face_compare import FaceComparisonClient
from tests.conftest import FakeFaceClient

USER = 42
NOW = datetime(2026, 3, 14, 15, 0, 0)


def make_engine(session, storage, face_client=None, now=NOW):
    return VerificationEngine(
        session,
        storage,
        face_client or FakeFaceClient(),
        clock=lambda: now,
    )


async def attempt_count(session) -> int:
    return await session.scalar(select(func.count(VerificationAttempt.id)))


async def add_rejection(session, created_at=NOW, decision="rejected", user_id=USER):
    session.add(VerificationAttempt(
        user_id=user_id,
        profile_photo_id=1,
        similarity_score=0.2,
        decision=decision,
        created_at=created_at,
    ))
    await session.commit()


@pytest.mark.parametrize("similarity, expected", [
    (0.95, VerificationDecision.VERIFIED),
    (0.70, VerificationDecision.VERIFIED),
    (0.6999, VerificationDecision.PENDING_REVIEW),
    (0.60, VerificationDecision.PENDING_REVIEW),
    (0.5999, VerificationDecision.REJECTED),
    (0.0, VerificationDecision.REJECTED),
])
def test_decide_thresholds(similarity, expected):
    assert make_engine(None, None).decide(similarity) is expected


async def test_verified_attempt_is_persisted(session, storage, add_photo):
    photo = await add_photo(user_id=USER, is_primary=True)
    face = FakeFaceClient(distance=0.2, facial_area=True)

    result = await make_engine(session, storage, face).verify(USER, b"selfie")

    assert result.decision is VerificationDecision.VERIFIED
    assert result.similarity == pytest.approx(0.8)
    assert result.message == MSG_VERIFIED
    attempt = await session.get(VerificationAttempt, result.attempt_id)
    assert attempt.decision == "verified"
    assert attempt.profile_photo_id == photo.id
    assert attempt.anti_spoofing_passed is True
    assert attempt.rejection_reason is None


async def test_borderline_similarity_goes_to_review(session, storage, add_photo):
    await add_photo(user_id=USER, is_primary=True)

    result = await make_engine(session, storage, FakeFaceClient(distance=0.35)).verify(USER, b"s")

    assert result.decision is VerificationDecision.PENDING_REVIEW
    assert "manual review" in result.message
    assert result.attempt_id is not None


async def test_low_similarity_is_rejected(session, storage, add_photo):
    await add_photo(user_id=USER, is_primary=True)

    result = await make_engine(
        session, storage, FakeFaceClient(distance=0.8, facial_area=False)
    ).verify(USER, b"s")

    assert result.decision is VerificationDecision.REJECTED
    attempt = await session.get(VerificationAttempt, result.attempt_id)
    assert attempt.anti_spoofing_passed is False
    assert attempt.rejection_reason == result.message


async def test_similarity_is_clamped(session, storage, add_photo):
    await add_photo(user_id=USER, is_primary=True)

    far = await make_engine(session, storage, FakeFaceClient(distance=1.7)).verify(USER, b"s")
    near = await make_engine(session, storage, FakeFaceClient(distance=-0.1)).verify(USER, b"s")

    assert far.similarity == 0.0
    assert near.similarity == 1.0


async def test_no_primary_photo(session, storage, add_photo):
    await add_photo(user_id=USER, is_primary=False)
    face = FakeFaceClient()

    result = await make_engine(session, storage, face).verify(USER, b"s")

    assert result.decision is VerificationDecision.REJECTED
    assert result.message == MSG_NO_PHOTO
    assert result.attempt_id is None
    assert face.calls == 0
    assert await attempt_count(session) == 0


@pytest.mark.parametrize("overrides", [
    {"moderation_status": "REJECTED"},
    {"is_deleted": True},
])
async def test_unservable_primary_photo_counts_as_missing(session, storage, add_photo, overrides):
    await add_photo(user_id=USER, is_primary=True, **overrides)

    result = await make_engine(session, storage).verify(USER, b"s")

    assert result.message == MSG_NO_PHOTO


async def test_no_photo_check_happens_before_budget(session, storage):
    for _ in range(3):
        await add_rejection(session)

    result = await make_engine(session, storage).verify(USER, b"s")

    assert result.decision is VerificationDecision.REJECTED
    assert result.message == MSG_NO_PHOTO


async def test_rate_limited_after_three_rejections(session, storage, add_photo):
    await add_photo(user_id=USER, is_primary=True)
    for _ in range(3):
        await add_rejection(session)
    face = FakeFaceClient()

    result = await make_engine(session, storage, face).verify(USER, b"s")

    assert result.decision is VerificationDecision.RATE_LIMITED
    assert "Try again tomorrow" in result.message
    assert face.calls == 0
    assert await attempt_count(session) == 3


async def test_pending_and_verified_do_not_burn_budget(session, storage, add_photo):
    await add_photo(user_id=USER, is_primary=True)
    for decision in ("pending_review", "pending_review", "verified", "rejected", "rejected"):
        await add_rejection(session, decision=decision)

    engine = make_engine(session, storage)

    assert await engine.count_rejections_today(USER) == 2
    assert (await engine.verify(USER, b"s")).decision is VerificationDecision.VERIFIED


async def test_budget_resets_at_utc_midnight(session, storage, add_photo):
    await add_photo(user_id=USER, is_primary=True)
    yesterday = NOW - timedelta(days=1)
    for _ in range(3):
        await add_rejection(session, created_at=yesterday)

    engine = make_engine(session, storage)

    assert await engine.count_rejections_today(USER) == 0
    assert (await engine.verify(USER, b"s")).decision is VerificationDecision.VERIFIED


@pytest.mark.parametrize("error", [
    CollaboratorError("deepface", "503 Service Unavailable"),
    CollaboratorError("deepface", "timed out"),
])
async def test_face_service_errors_are_not_persisted(session, storage, add_photo, error):
    await add_photo(user_id=USER, is_primary=True)

    result = await make_engine(session, storage, FakeFaceClient(error=error)).verify(USER, b"s")

    assert result.decision is VerificationDecision.ERROR
    assert result.message == MSG_UNAVAILABLE
    assert result.attempt_id is None
    assert await attempt_count(session) == 0


async def test_non_finite_distance_is_an_error(session, storage, add_photo):
    await add_photo(user_id=USER, is_primary=True)

    def handler(request):
        return httpx.Response(
            200,
            content=b'{"distance": NaN, "facial_areas": {}}',
            headers={"content-type": "application/json"},
        )

    face = FaceComparisonClient("http://deepface", transport=httpx.MockTransport(handler))
    engine = make_engine(session, storage, face)

    result = await engine.verify(USER, b"s")

    assert result.decision is VerificationDecision.ERROR
    assert result.attempt_id is None
    assert await attempt_count(session) == 0
    assert await engine.count_rejections_today(USER) == 0


async def test_budget_is_per_user(session, storage, add_photo):
    other_user = USER + 1
    await add_photo(user_id=USER, is_primary=True)
    await add_photo(user_id=other_user, is_primary=True)
    for _ in range(3):
        await add_rejection(session, user_id=USER)
    face = FakeFaceClient(distance=0.1)
    engine = make_engine(session, storage, face)

    other_result = await engine.verify(other_user, b"s")
    exhausted_result = await engine.verify(USER, b"s")

    assert other_result.decision is VerificationDecision.VERIFIED
    assert face.calls == 1
    assert exhausted_result.decision is VerificationDecision.RATE_LIMITED
    assert await engine.count_rejections_today(other_user) == 0


async def test_unreadable_reference_photo_is_an_error(session, storage, add_photo):
    photo = await add_photo(user_id=USER, is_primary=True)
    del storage.objects[photo.s3_key]
    face = FakeFaceClient()

    result = await make_engine(session, storage, face).verify(USER, b"s")

    assert result.decision is VerificationDecision.ERROR
    assert face.calls == 0


async def test_status(session, storage, add_photo):
    await add_photo(user_id=USER, is_primary=True)
    engine = make_engine(session, storage, FakeFaceClient(distance=0.9))

    before = await engine.get_status(USER)
    await engine.verify(USER, b"s")
    engine.face_client = FakeFaceClient(distance=0.1)
    await engine.verify(USER, b"s")
    after = await engine.get_status(USER)

    assert before.is_verified is False
    assert before.last_attempt is None
    assert before.attempts_remaining_today == 3
    assert after.is_verified is True
    assert after.last_attempt.decision == "verified"
    assert after.attempts_remaining_today == 2
