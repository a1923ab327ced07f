import io
import os

# Settings are read at import time; keep tests off Postgres and the worker loop
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("VOICE_MODERATION_ENABLED", "false")

import pytest
from PIL import Image
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from photo_service.database import Base
from photo_service.exceptions import CollaboratorError, StorageError
from photo_service.models import Photo, VoicePrompt  # noqa: F401  (registers tables)
from photo_service.services.face_compare import FaceComparison


# ----------------------------
# Fakes
# ----------------------------
class FakeStorage:
    """In-memory stand-in for StorageService."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}

    def upload_bytes(self, data, key, content_type="application/octet-stream"):
        self.objects[key] = data
        self.content_types[key] = content_type
        return key

    def download_file(self, key):
        if key not in self.objects:
            raise StorageError(f"download failed for {key}")
        return self.objects[key]

    def delete_file(self, key):
        return self.objects.pop(key, None) is not None

    def file_exists(self, key):
        return key in self.objects

    def get_file_size(self, key):
        data = self.objects.get(key)
        return None if data is None else len(data)

    def list_files(self, prefix=""):
        return [{"Key": k, "Size": len(v)} for k, v in self.objects.items() if k.startswith(prefix)]


class FakeSafetyClient:
    def __init__(self, blocked=(), fail=False):
        self.blocked = set(blocked)  # (user_id, target_user_id) pairs
        self.fail = fail
        self.calls = []

    async def is_blocked(self, user_id, target_user_id):
        self.calls.append((user_id, target_user_id))
        if self.fail:
            raise CollaboratorError("safety", "connection refused")
        return (user_id, target_user_id) in self.blocked


class FakeMatchmakingClient:
    def __init__(self, matches=(), fail=False):
        self.matches = {frozenset(pair) for pair in matches}
        self.fail = fail
        self.calls = []

    async def are_matched(self, user_id, other_user_id):
        self.calls.append((user_id, other_user_id))
        if self.fail:
            raise CollaboratorError("matchmaking", "timeout")
        return frozenset((user_id, other_user_id)) in self.matches


class FakeFaceClient:
    def __init__(self, distance=0.1, facial_area=True, error=None):
        self.distance = distance
        self.facial_area = facial_area
        self.error = error
        self.calls = 0

    async def verify(self, img1, img2):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return FaceComparison(distance=self.distance, facial_area_detected=self.facial_area)


class FakeTranscriber:
    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.calls = 0

    async def transcribe(self, audio):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.text


def make_image(width=800, height=1000, fmt="JPEG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(120, 90, 200)).save(buffer, format=fmt)
    return buffer.getvalue()


# ----------------------------
# Database
# ----------------------------
@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage():
    return FakeStorage()


# ----------------------------
# Row builders
# ----------------------------
@pytest.fixture
def add_photo(session, storage):
    counter = {"n": 0}

    async def _add(user_id=1, **overrides):
        counter["n"] += 1
        key = f"photos/{user_id}/p{counter['n']}.jpg"
        storage.upload_bytes(make_image(), key, "image/jpeg")
        values = dict(
            user_id=user_id,
            s3_key=key,
            original_filename=f"p{counter['n']}.jpg",
            content_type="image/jpeg",
            file_size_bytes=1000,
            display_order=counter["n"],
        )
        values.update(overrides)
        photo = Photo(**values)
        session.add(photo)
        await session.commit()
        return photo

    return _add


@pytest.fixture
def add_voice_prompt(session, storage):
    counter = {"n": 0}

    async def _add(user_id=1, store_audio=True, **overrides):
        counter["n"] += 1
        key = f"voice-prompts/{user_id}/v{counter['n']}.m4a"
        if store_audio:
            storage.upload_bytes(b"fake-audio", key, "audio/mp4")
        values = dict(
            user_id=user_id,
            s3_key=key,
            file_size_bytes=10,
            duration_seconds=10.0,
            mime_type="audio/mp4",
        )
        values.update(overrides)
        prompt = VoicePrompt(**values)
        session.add(prompt)
        await session.commit()
        return prompt

    return _add
