"""
Session and cookie capabilities for the analytics pipeline.
Session backends follow the Strategy Pattern.
"""

from .strategies import SessionStore, RedisSessionStore, InMemorySessionStore, NullSessionStore, SessionData
from .factory import SessionStoreFactory, SessionBackend
from .cookies import CookieStore, CookieJar, CookieWrite, TWO_YEARS, TEN_YEARS

__all__ = [
    "SessionStore",
    "RedisSessionStore",
    "InMemorySessionStore",
    "NullSessionStore",
    "SessionData",
    "SessionStoreFactory",
    "SessionBackend",
    "CookieStore",
    "CookieJar",
    "CookieWrite",
    "TWO_YEARS",
    "TEN_YEARS",
]
