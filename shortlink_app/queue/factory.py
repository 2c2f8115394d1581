"""
Factory for creating queue instances.
Simple, clean factory with singleton caching.
"""

import logging
from enum import Enum
from .strategies import QueueStrategy, RedisStreamQueue, InMemoryQueue
from shortlink_app.config import settings

logger = logging.getLogger(__name__)


class QueueBackend(Enum):
    """Available queue backends"""
    REDIS_STREAMS = "redis_streams"
    MEMORY = "memory"


class QueueFactory:
    """
    Simple factory for creating queue instances.

    Gets configuration from settings (not passed as parameters).
    """

    _instance: QueueStrategy = None  # Single cached instance

    @classmethod
    def create(cls, backend: QueueBackend) -> QueueStrategy:
        """
        Create or return cached queue instance.

        Args:
            backend: Type of queue backend (from enum)

        Returns:
            Singleton queue instance
        """
        if cls._instance is not None:
            return cls._instance

        if backend == QueueBackend.REDIS_STREAMS:
            import redis

            try:
                redis_client = redis.from_url(
                    settings.redis_url,
                    decode_responses=False,
                    socket_connect_timeout=2,
                    # Reads block up to queue_block_ms before returning
                    socket_timeout=settings.queue_block_ms / 1000 + 2,
                )

                # Test connection immediately
                redis_client.ping()

                cls._instance = RedisStreamQueue(
                    redis_client,
                    consumer_group=settings.queue_consumer_group,
                    reclaim_idle_ms=settings.queue_reclaim_idle_ms
                )
                logger.info("Redis queue initialized")

            except redis.exceptions.RedisError as e:
                logger.warning(f"Redis connection failed: {e}. Falling back to in-memory queue")
                cls._instance = InMemoryQueue(max_size=settings.queue_max_size)

        elif backend == QueueBackend.MEMORY:
            cls._instance = InMemoryQueue(max_size=settings.queue_max_size)
            logger.info("In-memory queue initialized")

        else:
            raise ValueError(f"Unknown queue backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
