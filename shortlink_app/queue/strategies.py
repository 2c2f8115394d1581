"""
Queue strategies using Strategy Pattern.
Allows switching between different queue backends (Redis Streams, In-Memory).
"""

from abc import ABC, abstractmethod
from typing import List, Dict
import asyncio
import logging
import os
import socket
import time
from collections import deque

from redis.exceptions import RedisError, ResponseError

from .models import ClickEvent

logger = logging.getLogger(__name__)


class QueueStrategy(ABC):
    """
    Abstract base class for queue strategies.

    This is the Strategy Pattern interface - allows multiple queue implementations
    without changing the redirect handler or the worker.
    """

    @abstractmethod
    async def publish(self, queue_name: str, message: ClickEvent) -> bool:
        """
        Publish a message to the queue.

        Args:
            queue_name: Name of the queue
            message: ClickEvent to publish

        Returns:
            True if accepted, False otherwise
        """
        pass

    @abstractmethod
    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[ClickEvent]:
        """
        Consume messages from the queue.

        Args:
            queue_name: Name of the queue
            batch_size: Maximum number of messages to retrieve
            block_time: Time to wait for messages (milliseconds)

        Returns:
            List of ClickEvent messages
        """
        pass

    @abstractmethod
    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        """
        Acknowledge messages (mark as processed).

        Args:
            queue_name: Name of the queue
            message_ids: List of message IDs to acknowledge

        Returns:
            True if successful
        """
        pass

    @abstractmethod
    async def get_queue_length(self, queue_name: str) -> int:
        """
        Get the number of pending messages in queue.

        Args:
            queue_name: Name of the queue

        Returns:
            Number of pending messages
        """
        pass


class RedisStreamQueue(QueueStrategy):
    """
    Redis Streams implementation for message queue.

    - Persistent (messages survive restarts)
    - Consumer groups (multiple workers)
    - Unacknowledged messages stay pending; once idle for
      ``reclaim_idle_ms`` any consumer claims and retries them

    How it works:
    1. Producer publishes messages using XADD
    2. Consumer claims idle pending messages using XAUTOCLAIM, then reads
       new ones using XREADGROUP
    3. Consumer acknowledges messages using XACK

    The client is redis-py's blocking client. Every command runs in a worker
    thread so a blocking XREADGROUP never stalls the event loop serving
    redirects.
    """

    ERROR_BACKOFF = 1.0  # seconds to wait after a failed read

    def __init__(self, redis_client, consumer_group: str = "click_workers", reclaim_idle_ms: int = 60000):
        """
        Initialize Redis Streams queue.

        Args:
            redis_client: Redis client instance
            consumer_group: Name of consumer group for workers
            reclaim_idle_ms: How long a message stays pending before it is retried
        """
        self.redis = redis_client
        self.consumer_group = consumer_group
        self.consumer_name = f"worker-{socket.gethostname()}-{os.getpid()}"
        self.reclaim_idle_ms = reclaim_idle_ms
        self._initialized_streams = set()

    async def _ensure_stream_exists(self, queue_name: str):
        """
        Ensure stream and consumer group exist.
        Creates them if they don't exist.
        """
        if queue_name in self._initialized_streams:
            return

        try:
            # MKSTREAM creates the stream along with the group
            await asyncio.to_thread(
                self.redis.xgroup_create,
                name=queue_name,
                groupname=self.consumer_group,
                id='0',
                mkstream=True
            )
            logger.info(f"Created Redis stream: {queue_name}")
        except ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise

        self._initialized_streams.add(queue_name)

    def _to_events(self, stream_messages) -> List[ClickEvent]:
        events = []
        for message_id, message_data in stream_messages:
            # XAUTOCLAIM reports trimmed entries with no fields
            if not message_data:
                continue
            try:
                event = ClickEvent.model_validate_json(message_data[b'data'])
                event.message_id = message_id.decode('utf-8')
                events.append(event)
            except (KeyError, ValueError) as e:
                logger.warning(f"Failed to parse message {message_id}: {e}")
        return events

    async def publish(self, queue_name: str, message: ClickEvent) -> bool:
        """
        Publish message to Redis Stream.

        Uses XADD command to append message to stream.
        """
        try:
            await self._ensure_stream_exists(queue_name)
            await asyncio.to_thread(self.redis.xadd, queue_name, {'data': message.model_dump_json()})
            return True

        except RedisError as e:
            logger.error(f"Redis publish error for slug '{message.slug}': {e}")
            return False

    async def reclaim(self, queue_name: str, batch_size: int = 1) -> List[ClickEvent]:
        """
        Take over messages another delivery left unacknowledged.

        Covers events whose write failed and events held by a worker that
        died before acknowledging them.
        """
        await self._ensure_stream_exists(queue_name)
        response = await asyncio.to_thread(
            self.redis.xautoclaim,
            queue_name,
            self.consumer_group,
            self.consumer_name,
            min_idle_time=self.reclaim_idle_ms,
            start_id='0-0',
            count=batch_size
        )
        events = self._to_events(response[1])
        if events:
            logger.info(f"Reclaimed {len(events)} pending clicks from '{queue_name}'")
        return events

    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[ClickEvent]:
        """
        Consume messages from Redis Stream.

        Idle pending messages are retried before new ones are read.
        Messages are not removed until acknowledged.
        """
        try:
            events = await self.reclaim(queue_name, batch_size)
            if events:
                return events

            # '>' means "messages never delivered to other consumers"
            messages = await asyncio.to_thread(
                self.redis.xreadgroup,
                groupname=self.consumer_group,
                consumername=self.consumer_name,
                streams={queue_name: '>'},
                count=batch_size,
                block=block_time
            )

            events = []
            for stream_name, stream_messages in messages or []:
                events.extend(self._to_events(stream_messages))
            return events

        except RedisError as e:
            logger.error(f"Redis consume error: {e}")
            await asyncio.sleep(self.ERROR_BACKOFF)
            return []

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        """
        Acknowledge messages (remove from pending list).

        Uses XACK command to mark messages as processed.
        """
        if not message_ids:
            return True

        try:
            await asyncio.to_thread(self.redis.xack, queue_name, self.consumer_group, *message_ids)
            return True

        except RedisError as e:
            logger.error(f"Redis ack error: {e}")
            return False

    async def get_queue_length(self, queue_name: str) -> int:
        """Number of entries in the stream"""
        try:
            return await asyncio.to_thread(self.redis.xlen, queue_name)
        except RedisError:
            return 0


class InMemoryQueue(QueueStrategy):
    """
    Bounded in-memory queue implementation using Python deque.

    - Simple (no external dependencies)
    - Not persistent: events not yet consumed are lost on restart
    - Not distributed: producer and worker must share the process

    A full queue rejects new events instead of dropping old ones.
    Used in development/testing and single-process deployments.
    """

    POLL_INTERVAL = 0.05  # seconds between checks while blocking

    def __init__(self, max_size: int = 10000):
        """Initialize in-memory queues"""
        self.max_size = max_size
        self._queues: Dict[str, deque] = {}

    def _get_queue(self, queue_name: str) -> deque:
        """Get or create queue"""
        if queue_name not in self._queues:
            self._queues[queue_name] = deque()
        return self._queues[queue_name]

    async def publish(self, queue_name: str, message: ClickEvent) -> bool:
        """Add message to in-memory queue"""
        queue = self._get_queue(queue_name)
        if len(queue) >= self.max_size:
            logger.error(
                f"In-memory queue '{queue_name}' is full ({self.max_size}), "
                f"rejecting click for slug '{message.slug}'"
            )
            return False
        queue.append(message)
        return True

    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[ClickEvent]:
        """
        Consume messages from in-memory queue.

        Waits up to ``block_time`` milliseconds for the first message.
        """
        queue = self._get_queue(queue_name)
        deadline = time.monotonic() + block_time / 1000

        while not queue and time.monotonic() < deadline:
            await asyncio.sleep(self.POLL_INTERVAL)

        messages = []
        while queue and len(messages) < batch_size:
            messages.append(queue.popleft())

        return messages

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        """
        Acknowledge messages.

        Note: In-memory queue doesn't need acknowledgment
        (messages are removed on consume)
        """
        return True

    async def get_queue_length(self, queue_name: str) -> int:
        """Get queue length"""
        return len(self._get_queue(queue_name))
