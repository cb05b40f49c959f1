"""
Factory for creating session store instances.
Simple, clean factory with singleton caching.
"""

from enum import Enum
import logging

from .strategies import SessionStore, RedisSessionStore, InMemorySessionStore, NullSessionStore
from tracking_app.config import Settings, get_settings

logger = logging.getLogger(__name__)


class SessionBackend(Enum):
    """Available session backends"""
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


class SessionStoreFactory:
    """
    Simple factory for creating session stores.

    Uses Singleton Pattern - creates instance once, reuses it.
    """

    _instance: SessionStore = None  # Single cached instance

    @classmethod
    def create(cls, backend: SessionBackend, settings: Settings = None) -> SessionStore:
        """
        Create or return cached session store.

        Args:
            backend: Type of session backend (from enum)
            settings: Settings to read the Redis URL from (defaults to process settings)

        Returns:
            Singleton session store instance
        """
        if cls._instance is not None:
            return cls._instance

        settings = settings or get_settings()

        if backend == SessionBackend.REDIS:
            import redis

            try:
                redis_client = redis.from_url(
                    settings.redis_url,
                    decode_responses=False,
                    socket_connect_timeout=2,
                    socket_timeout=2,
                )

                # Test connection immediately
                redis_client.ping()

                cls._instance = RedisSessionStore(redis_client)
                logger.info("Redis session store initialized")

            except Exception as e:
                logger.warning("Redis connection failed: %s; falling back to in-memory sessions", e)
                cls._instance = InMemorySessionStore()

        elif backend == SessionBackend.MEMORY:
            cls._instance = InMemorySessionStore()
            logger.info("In-memory session store initialized")

        elif backend == SessionBackend.NULL:
            cls._instance = NullSessionStore()
            logger.info("Null session store initialized")

        else:
            raise ValueError(f"Unknown session backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
