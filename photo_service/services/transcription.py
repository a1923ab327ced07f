"""
Transcription

Speech-to-text for voice prompts: ffmpeg normalises the stored clip to
16 kHz mono WAV, faster-whisper transcribes it.
"""

import asyncio
import logging
import tempfile
import time
from pathlib import Path

from photo_service.config import get_settings
from photo_service.exceptions import TranscriptionError
from photo_service.metrics import transcription_duration

logger = logging.getLogger(__name__)
settings = get_settings()


class Transcriber:
    """
    Whisper transcriber.

    The model is loaded on first use and kept for the life of the
    transcriber. Inference is blocking and runs in a worker thread.
    """

    def __init__(
        self,
        model_name: str | None = None,
        model_dir: str | None = None,
        language: str | None = None,
        ffmpeg_binary: str | None = None,
    ):
        self.model_name = model_name or settings.whisper_model
        self.model_dir = model_dir or settings.whisper_model_dir
        self.language = language if language is not None else settings.whisper_language
        self.ffmpeg_binary = ffmpeg_binary or settings.ffmpeg_binary
        self._model = None
        self._load_lock = asyncio.Lock()

    async def _get_model(self):
        """Load the Whisper model once, downloading it on first run."""
        if self._model is not None:
            return self._model

        async with self._load_lock:
            if self._model is None:
                logger.info(f"Loading Whisper model '{self.model_name}' into {self.model_dir}")
                Path(self.model_dir).mkdir(parents=True, exist_ok=True)
                self._model = await asyncio.to_thread(self._load_model)
                logger.info("Whisper model loaded")
        return self._model

    def _load_model(self):
        from faster_whisper import WhisperModel

        return WhisperModel(
            self.model_name,
            device="cpu",
            compute_type="int8",
            download_root=self.model_dir,
        )

    async def _convert_to_wav(self, input_path: Path, output_path: Path):
        """Transcode to 16 kHz mono PCM WAV."""
        proc = await asyncio.create_subprocess_exec(
            self.ffmpeg_binary,
            "-i", str(input_path),
            "-ar", "16000",   # 16kHz sample rate
            "-ac", "1",       # mono
            "-f", "wav",
            "-y",
            str(output_path),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            logger.error(
                "ffmpeg failed (%s): %s",
                proc.returncode,
                stderr.decode("utf-8", "ignore")[-500:],
            )
            raise TranscriptionError("ffmpeg conversion failed")

    def _run_inference(self, model, wav_path: Path) -> str:
        segments, _info = model.transcribe(str(wav_path), language=self.language)
        # segments is lazy; decoding happens while iterating
        return " ".join(segment.text.strip() for segment in segments).strip()

    async def transcribe(self, audio: bytes) -> str:
        """
        Transcribe a stored clip.

        Raises:
            TranscriptionError: if decoding or inference fails
        """
        if not audio:
            raise TranscriptionError("empty audio")

        start = time.monotonic()
        with tempfile.TemporaryDirectory(prefix="voice-moderation-") as tmpdir:
            input_path = Path(tmpdir) / "input.audio"
            wav_path = Path(tmpdir) / "input.wav"
            input_path.write_bytes(audio)

            try:
                await self._convert_to_wav(input_path, wav_path)
                model = await self._get_model()
                text = await asyncio.to_thread(self._run_inference, model, wav_path)
            except TranscriptionError:
                raise
            except Exception as e:
                logger.error(f"Transcription failed: {type(e).__name__}")
                raise TranscriptionError(str(e)) from e

        transcription_duration.observe(time.monotonic() - start)
        logger.debug(f"Transcribed {len(audio)} bytes into {len(text)} characters")
        return text
