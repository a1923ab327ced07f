"""
Moderation Worker

Polling loop that feeds AUTO_APPROVED voice prompts to the moderation
pipeline. Runs as a task inside the API process or on its own through
photo_service.worker.
"""

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from photo_service.metrics import moderation_batch_size
from photo_service.models.moderation import ModerationStatus
from photo_service.models.voice_prompt import VoicePrompt
from photo_service.pipeline.voice_moderation import VoiceModerationPipeline

logger = logging.getLogger(__name__)


class ModerationWorker:
    """Periodically moderates the oldest unclassified voice prompts."""

    def __init__(
        self,
        pipeline: VoiceModerationPipeline,
        session_factory: async_sessionmaker[AsyncSession],
        poll_interval: float = 30.0,
        batch_size: int = 10,
        initial_delay: float = 10.0,
    ):
        self.pipeline = pipeline
        self.session_factory = session_factory
        self.poll_interval = poll_interval
        self.batch_size = batch_size
        self.initial_delay = initial_delay

    async def run(self, stop_event: asyncio.Event):
        """Poll until stop_event is set."""
        logger.info(
            f"Voice moderation worker started "
            f"(interval={self.poll_interval}s, batch={self.batch_size})"
        )

        # Let the rest of the app finish starting up
        if await self._wait(stop_event, self.initial_delay):
            logger.info("Voice moderation worker stopped before first pass")
            return

        while not stop_event.is_set():
            try:
                await self.process_batch(stop_event)
            except Exception as e:
                logger.error(f"Voice moderation pass failed: {e}")

            if await self._wait(stop_event, self.poll_interval):
                break

        logger.info("Voice moderation worker stopped")

    async def process_batch(self, stop_event: asyncio.Event | None = None) -> int:
        """
        Run one polling pass.

        Returns:
            Number of clips handed to the pipeline
        """
        async with self.session_factory() as session:
            result = await session.execute(
                select(VoicePrompt.id)
                .where(
                    VoicePrompt.moderation_status == ModerationStatus.AUTO_APPROVED.value,
                    VoicePrompt.is_deleted == False,  # noqa: E712
                )
                .order_by(VoicePrompt.created_at, VoicePrompt.id)
                .limit(self.batch_size)
            )
            pending_ids = list(result.scalars())

        moderation_batch_size.observe(len(pending_ids))
        if not pending_ids:
            return 0

        logger.info(f"Moderating {len(pending_ids)} voice prompts")

        processed = 0
        for voice_prompt_id in pending_ids:
            if stop_event is not None and stop_event.is_set():
                logger.info("Shutdown requested, leaving the rest of the batch")
                break
            await self.pipeline.moderate(voice_prompt_id)
            processed += 1

        return processed

    @staticmethod
    async def _wait(stop_event: asyncio.Event, seconds: float) -> bool:
        """Sleep up to `seconds`; True if stop_event was set meanwhile."""
        if seconds <= 0:
            return stop_event.is_set()
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False
