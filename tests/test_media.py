import asyncio
import io

import pytest
from PIL import Image

from photo_service.exceptions import TranscriptionError, UploadValidationError
from photo_service.services.image_processing import ImageProcessor
from photo_service.services.transcription import Transcriber
from tests.conftest import make_image


# ----------------------------
# Image processing
# ----------------------------
def test_inspect_reads_dimensions():
    info = ImageProcessor().inspect(make_image(640, 480, "PNG"))

    assert (info.width, info.height, info.format) == (640, 480, "PNG")


def test_inspect_rejects_garbage():
    with pytest.raises(UploadValidationError):
        ImageProcessor().inspect(b"definitely not an image")


@pytest.mark.parametrize("width, height, size, fmt, expected", [
    (1000, 1000, 200 * 1024, "JPEG", 100),
    (150, 150, 200 * 1024, "JPEG", 80),
    (300, 300, 200 * 1024, "JPEG", 90),
    (600, 600, 200 * 1024, "JPEG", 95),
    (3000, 1000, 200 * 1024, "JPEG", 85),
    (1000, 1000, 10 * 1024, "JPEG", 90),
    (1000, 1000, 6000 * 1024, "JPEG", 95),
    (1000, 1000, 200 * 1024, "GIF", 95),
])
def test_quality_score_deductions(width, height, size, fmt, expected):
    assert ImageProcessor().quality_score(width, height, size, fmt) == expected


def test_blur_returns_jpeg_of_same_size():
    blurred = ImageProcessor().blur(make_image(400, 300, "PNG"), 0.8)

    with Image.open(io.BytesIO(blurred)) as image:
        assert image.format == "JPEG"
        assert image.size == (400, 300)


def test_blur_rejects_bad_intensity():
    with pytest.raises(UploadValidationError):
        ImageProcessor().blur(make_image(), 1.2)


# ----------------------------
# Transcription
# ----------------------------
async def test_transcribe_empty_audio():
    with pytest.raises(TranscriptionError):
        await Transcriber().transcribe(b"")


async def test_transcribe_without_ffmpeg_fails_cleanly(tmp_path):
    transcriber = Transcriber(
        model_dir=str(tmp_path), ffmpeg_binary=str(tmp_path / "no-such-ffmpeg")
    )

    with pytest.raises(TranscriptionError):
        await transcriber.transcribe(b"audio")


async def test_model_is_loaded_once(tmp_path, monkeypatch):
    transcriber = Transcriber(model_dir=str(tmp_path / "models"))
    loads = []

    def fake_load():
        loads.append(1)
        return object()

    monkeypatch.setattr(transcriber, "_load_model", fake_load)

    models = await asyncio.gather(*(transcriber._get_model() for _ in range(5)))

    assert len(loads) == 1
    assert all(m is models[0] for m in models)
