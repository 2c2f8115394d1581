"""
Click Worker

Consumes ClickEvents published by the redirect handler in background
tracking mode and writes them to the database.

- Consumes messages from the queue in batches
- Each event is one atomic unit: Click row + hit counter increment
- Only events written successfully are acknowledged; on Redis Streams the
  rest stay pending and are reclaimed once idle for queue_reclaim_idle_ms
"""

import asyncio
import logging
import signal
import sys
from typing import List

from sqlalchemy.exc import SQLAlchemyError

from shortlink_app.config import settings
from shortlink_app.database.connection import SessionLocal
from shortlink_app.queue.models import ClickEvent
from shortlink_app.queue.strategies import QueueStrategy
from shortlink_app.services.redirect_service import RedirectService

logger = logging.getLogger(__name__)


class ClickWorker:
    """Batch consumer that turns queued click events into Click rows."""

    def __init__(
        self,
        queue: QueueStrategy,
        db_session_factory=SessionLocal,
        queue_name: str = None,
        batch_size: int = None,
        block_time: int = None
    ):
        """
        Args:
            queue: Queue strategy for consuming messages
            db_session_factory: Factory for creating database sessions
        """
        self.queue = queue
        self.db_session_factory = db_session_factory
        self.queue_name = queue_name or settings.queue_name
        self.batch_size = batch_size or settings.queue_batch_size
        self.block_time = block_time or settings.queue_block_ms
        self.running = False
        self.processed_count = 0
        self.failed_count = 0

    async def start(self):
        """Consume until ``stop()`` is called or the task is cancelled"""
        self.running = True
        logger.info(f"Click worker started (queue={self.queue_name}, batch size={self.batch_size})")

        while self.running:
            try:
                await self.run_once()
                # Database writes are synchronous; let queued requests run between batches
                await asyncio.sleep(0)
            except asyncio.CancelledError:
                logger.info("Click worker task cancelled")
                break
            except Exception:
                logger.exception("Error processing click batch")
                await asyncio.sleep(1)

        logger.info(f"Click worker stopped after {self.processed_count} clicks")

    async def run_once(self) -> int:
        """Consume and process one batch. Returns the number of clicks written."""
        messages = await self.queue.consume(
            queue_name=self.queue_name,
            batch_size=self.batch_size,
            block_time=self.block_time
        )
        if not messages:
            return 0
        return await self.process_batch(messages)

    async def drain(self) -> int:
        """Process everything currently queued without waiting for more"""
        written = 0
        seen = set()
        while True:
            # block=0 means "forever" to XREADGROUP, so wait 1ms at most
            messages = await self.queue.consume(self.queue_name, self.batch_size, block_time=1)
            # A failed event can be reclaimed straight back; try it once per drain
            fresh = [m for m in messages if m.message_id is None or m.message_id not in seen]
            if not fresh:
                return written
            seen.update(m.message_id for m in fresh if m.message_id)
            written += await self.process_batch(fresh)

    async def process_batch(self, messages: List[ClickEvent]) -> int:
        """
        Write each event in its own transaction.

        One bad event (for example a link that no longer exists) does not
        hold back the rest of the batch.
        """
        written_ids = []
        written = 0
        db = self.db_session_factory()

        try:
            service = RedirectService(db)
            for event in messages:
                try:
                    await service.track(event.link_id, event.to_context(), timestamp=event.timestamp)
                except SQLAlchemyError as e:
                    self.failed_count += 1
                    logger.error(f"Failed to record click for slug '{event.slug}': {e}")
                    continue

                written += 1
                if event.message_id:
                    written_ids.append(event.message_id)
        finally:
            db.close()

        if written_ids:
            await self.queue.ack(self.queue_name, written_ids)

        self.processed_count += written
        logger.info(f"Recorded {written}/{len(messages)} clicks. Total: {self.processed_count}")
        return written

    def _signal_handler(self, signum, frame):
        """Handle signals for graceful shutdown"""
        logger.info(f"Received signal {signum}. Shutting down gracefully...")
        self.stop()

    def stop(self):
        """Stop the worker"""
        self.running = False


async def main():
    """
    Standalone worker for the Redis Streams backend.

    Usage:
        python -m shortlink_app.workers.click_worker
    """
    from shortlink_app.logging_config import configure_logging
    from shortlink_app.queue.factory import QueueFactory, QueueBackend

    configure_logging()
    logger.info(f"Environment: {settings.environment}, queue backend: {settings.queue_backend}")

    queue = QueueFactory.create(QueueBackend(settings.queue_backend))
    worker = ClickWorker(queue=queue)

    signal.signal(signal.SIGINT, worker._signal_handler)
    signal.signal(signal.SIGTERM, worker._signal_handler)

    try:
        await worker.start()
    except Exception:
        logger.exception("Fatal error in click worker")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
