"""
Session store strategies using Strategy Pattern.
Allows switching between different session backends (Redis, In-Memory, Null).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple
import json
import logging
import time

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """
    Abstract base class for session stores.

    A session is a small JSON-serialisable dict keyed by the session cookie.
    All methods are async because session operations may involve network I/O.
    """

    @abstractmethod
    async def load(self, session_id: str) -> Dict[str, Any]:
        """
        Load a session.

        Args:
            session_id: Value of the session cookie

        Returns:
            Session data, or an empty dict if unknown or expired
        """
        pass

    @abstractmethod
    async def save(self, session_id: str, data: Dict[str, Any], ttl: int) -> bool:
        """
        Save a session and (re)start its expiry.

        Args:
            session_id: Value of the session cookie
            data: Session data
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Delete a session; True if it existed"""
        pass


class RedisSessionStore(SessionStore):
    """
    Redis session store.

    Sessions are stored as JSON strings under ``session:<id>`` with SETEX, so
    Redis enforces the session duration.
    """

    key_prefix = "session:"

    def __init__(self, redis_client):
        """
        Initialize Redis session store.

        Args:
            redis_client: Redis client instance (redis.Redis)
        """
        self.redis = redis_client

    def _key(self, session_id: str) -> str:
        return f"{self.key_prefix}{session_id}"

    async def load(self, session_id: str) -> Dict[str, Any]:
        try:
            raw = self.redis.get(self._key(session_id))
            if not raw:
                return {}
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            data = json.loads(raw)
            return data if isinstance(data, dict) else {}
        except Exception as e:
            logger.warning("Redis session load error: %s", e)
            return {}

    async def save(self, session_id: str, data: Dict[str, Any], ttl: int) -> bool:
        try:
            return bool(self.redis.setex(self._key(session_id), ttl, json.dumps(data)))
        except Exception as e:
            logger.warning("Redis session save error: %s", e)
            return False

    async def delete(self, session_id: str) -> bool:
        try:
            return bool(self.redis.delete(self._key(session_id)))
        except Exception as e:
            logger.warning("Redis session delete error: %s", e)
            return False


class InMemorySessionStore(SessionStore):
    """
    In-memory session store using a dict of (expires_at, data).

    Per-process only; used in development, tests and as the Redis fallback.
    Expired entries are dropped lazily on load.
    """

    def __init__(self, clock=time.monotonic):
        self._sessions: Dict[str, Tuple[float, Dict[str, Any]]] = {}
        self._clock = clock

    async def load(self, session_id: str) -> Dict[str, Any]:
        entry = self._sessions.get(session_id)
        if entry is None:
            return {}
        expires_at, data = entry
        if expires_at <= self._clock():
            del self._sessions[session_id]
            return {}
        return dict(data)

    async def save(self, session_id: str, data: Dict[str, Any], ttl: int) -> bool:
        self._sessions[session_id] = (self._clock() + ttl, dict(data))
        return True

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)


class NullSessionStore(SessionStore):
    """
    Session store that keeps nothing.

    Campaign parameters then only apply to the request that carried them.
    """

    async def load(self, session_id: str) -> Dict[str, Any]:
        return {}

    async def save(self, session_id: str, data: Dict[str, Any], ttl: int) -> bool:
        return True

    async def delete(self, session_id: str) -> bool:
        return False


class SessionData:
    """
    Per-request view of one session.

    Reads and writes are synchronous against the loaded dict; the middleware
    persists it at end of request when something changed.
    """

    def __init__(self, session_id: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        self.session_id = session_id
        self._data: Dict[str, Any] = dict(data or {})
        self.modified = False

    @property
    def is_new(self) -> bool:
        return self.session_id is None

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        if self._data.get(key) != value:
            self._data[key] = value
            self.modified = True

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)
