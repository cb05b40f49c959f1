"""
Client identity resolution from cookies.
"""

from typing import Mapping, Optional, Tuple
import logging
import uuid

from tracking_app.config import Settings
from tracking_app.models.hit import ClientIdentity
from tracking_app.session.cookies import CookieStore, CookieWrite, TWO_YEARS, TEN_YEARS

logger = logging.getLogger(__name__)

GA_COOKIE = "_ga"
FALLBACK_COOKIE = "_ia"
GCLID = "gclid"


def client_id_from_ga_cookie(value: str) -> Optional[str]:
    """
    Extract the client ID from a GA cookie value.

    ``GA1.2.111.222`` -> ``111.222``. Values with fewer than three fields
    are malformed and yield None.
    """
    parts = value.split(".", 3)
    if len(parts) < 3:
        return None
    cid = ".".join(parts[2:])
    return cid or None


def generate_client_id() -> str:
    """Random v4 UUID used when no cookie identifies the visitor"""
    return str(uuid.uuid4())


class IdentityResolver:
    """
    Resolves the visitor's client ID and ad-click ID.

    Resolution order for the client ID:
    1. ``_ga`` cookie (set by the GA JavaScript tag)
    2. ``_ia`` fallback cookie (set by us on an earlier visit)
    3. A fresh UUID, unless ``require_ga_cookie_client_id`` is on

    The pure ``resolve_*`` methods return the cookie they would like written;
    ``resolve`` applies those writes through a ``CookieStore``.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def resolve_client_id(self, cookies: Mapping[str, str]) -> Tuple[str, Optional[CookieWrite]]:
        cid = ""
        persist = False

        ga_value = cookies.get(GA_COOKIE)
        if ga_value is not None:
            cid = client_id_from_ga_cookie(ga_value) or ""
            if not cid:
                logger.debug("Ignoring malformed %s cookie: %r", GA_COOKIE, ga_value)
            persist = bool(cid)

        if not cid and cookies.get(FALLBACK_COOKIE):
            # An existing identity is never rewritten
            cid = cookies[FALLBACK_COOKIE]

        if not cid and not self.settings.require_ga_cookie_client_id:
            cid = generate_client_id()
            persist = True

        cookie = None
        if persist and cid and self.settings.create_client_id_cookie:
            cookie = CookieWrite(FALLBACK_COOKIE, cid, max_age=TWO_YEARS)

        return cid, cookie

    def resolve_ad_click_id(
        self,
        query_params: Mapping[str, str],
        cookies: Mapping[str, str],
    ) -> Tuple[Optional[str], Optional[CookieWrite]]:
        gclid = query_params.get(GCLID)
        if gclid:
            cookie = None
            if self.settings.create_gclid_cookie:
                cookie = CookieWrite(GCLID, gclid, max_age=TEN_YEARS)
            return gclid, cookie

        return cookies.get(GCLID) or None, None

    def resolve(self, query_params: Mapping[str, str], cookie_store: CookieStore) -> ClientIdentity:
        """Resolve the full identity and queue any cookie writes on the store."""
        cookies = _CookieView(cookie_store)

        cid, cid_cookie = self.resolve_client_id(cookies)
        gclid, gclid_cookie = self.resolve_ad_click_id(query_params, cookies)

        for cookie in (cid_cookie, gclid_cookie):
            if cookie is not None:
                cookie_store.set(cookie)

        return ClientIdentity(client_id=cid, ad_click_id=gclid)


class _CookieView:
    """Mapping-style read access over a CookieStore"""

    def __init__(self, store: CookieStore):
        self._store = store

    def get(self, name: str, default=None):
        value = self._store.get(name)
        return default if value is None else value

    def __getitem__(self, name: str) -> str:
        value = self._store.get(name)
        if value is None:
            raise KeyError(name)
        return value
