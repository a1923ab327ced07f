"""
Voice Moderation Worker

Standalone entry point for the voice moderation loop, for deployments
that keep it out of the API process.
"""

import asyncio
import logging
import signal

from rich.console import Console
from rich.logging import RichHandler
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from photo_service.config import get_settings
from photo_service.database import SessionLocal, close_db, init_db
from photo_service.metrics import start_metrics_server
from photo_service.pipeline.moderation_worker import ModerationWorker
from photo_service.pipeline.text_scanner import DEFAULT_RULES, load_rule_set
from photo_service.pipeline.voice_moderation import VoiceModerationPipeline
from photo_service.services.storage import get_storage_service
from photo_service.services.transcription import Transcriber

logger = logging.getLogger(__name__)
console = Console()

settings = get_settings()


def create_moderation_worker(
    session_factory: async_sessionmaker[AsyncSession] = SessionLocal,
) -> ModerationWorker:
    """Wire the pipeline and worker from settings."""
    rules = (
        load_rule_set(settings.moderation_rules_file)
        if settings.moderation_rules_file
        else DEFAULT_RULES
    )
    pipeline = VoiceModerationPipeline(
        session_factory=session_factory,
        storage=get_storage_service(),
        transcriber=Transcriber(),
        rules=rules,
    )
    return ModerationWorker(
        pipeline,
        session_factory,
        poll_interval=settings.voice_moderation_poll_interval,
        batch_size=settings.voice_moderation_batch_size,
        initial_delay=settings.voice_moderation_initial_delay,
    )


async def run_worker():
    stop_event = asyncio.Event()

    def request_shutdown():
        logger.info("Shutdown signal received, finishing current clip...")
        stop_event.set()

    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, request_shutdown)
    loop.add_signal_handler(signal.SIGTERM, request_shutdown)

    await init_db()
    try:
        worker = create_moderation_worker()
        await worker.run(stop_event)
    finally:
        await close_db()

    logger.info("Worker shutdown complete")


def main():
    """Main worker entry point."""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True)],
    )

    console.print("[bold green]Photo Service Voice Moderation Worker[/bold green]")
    console.print(f"Whisper model: {settings.whisper_model}")
    console.print(f"Poll interval: {settings.voice_moderation_poll_interval}s")
    console.print(f"Batch size: {settings.voice_moderation_batch_size}")
    console.print("")

    start_metrics_server(port=settings.metrics_port)
    console.print(f"Metrics: http://localhost:{settings.metrics_port}/metrics")
    console.print("")

    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
