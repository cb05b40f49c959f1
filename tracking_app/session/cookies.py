"""
Cookie capability used by the identity resolver.

The resolver never touches the framework's request or response objects; it
reads and writes through a ``CookieStore``. ``CookieJar`` binds that to a
Starlette request (reads) and response (writes).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional
import logging

logger = logging.getLogger(__name__)

TWO_YEARS = 2 * 365 * 24 * 60 * 60
TEN_YEARS = 10 * 365 * 24 * 60 * 60


@dataclass(frozen=True)
class CookieWrite:
    """A cookie the pipeline wants set on the response."""

    name: str
    value: str
    max_age: int
    path: str = "/"


class CookieStore(ABC):
    @abstractmethod
    def get(self, name: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, cookie: CookieWrite) -> bool:
        """Queue a cookie write; False if that cookie was already written this request"""
        pass


class CookieJar(CookieStore):
    """
    Request-scoped cookie store.

    Writes are collected and applied to the response once, at most one write
    per cookie name. A written value is visible to later reads in the same
    request.
    """

    def __init__(self, cookies: Optional[Mapping[str, str]] = None):
        self._cookies: Dict[str, str] = dict(cookies or {})
        self._pending: Dict[str, CookieWrite] = {}

    def get(self, name: str) -> Optional[str]:
        return self._cookies.get(name)

    def set(self, cookie: CookieWrite) -> bool:
        if cookie.name in self._pending:
            logger.debug("Cookie %s already written this request", cookie.name)
            return False
        self._pending[cookie.name] = cookie
        self._cookies[cookie.name] = cookie.value
        return True

    @property
    def pending(self) -> List[CookieWrite]:
        return list(self._pending.values())

    def apply(self, response) -> None:
        """Write pending cookies onto a Starlette response."""
        for cookie in self._pending.values():
            response.set_cookie(
                key=cookie.name,
                value=cookie.value,
                max_age=cookie.max_age,
                path=cookie.path,
                samesite="lax",
            )
