"""
Tracking URLs for out-of-band tracking (e.g. links in outgoing email).

A tracking URL points at one of our tracking routes and carries everything
needed to rebuild the hit as query parameters. Visiting it records the hit
and redirects to the original target.
"""

import hashlib
import hmac
import logging
from typing import Iterable, Mapping, Tuple
from urllib.parse import quote, urlencode, urlsplit

from tracking_app.config import Settings

logger = logging.getLogger(__name__)

SIGNATURE_PARAM = "sig"

# Query fields that decide which hit a link records. Anything else (UTM tags
# added by mail tools, for instance) is left out of the signature.
SIGNED_PARAMS = frozenset({
    "url",
    "title",
    "eventCategory",
    "eventAction",
    "eventLabel",
    "eventValue",
    "params",
})

PAGE_VIEW_ROUTE = "page-view"
EVENT_ROUTE = "event"


def last_path_segment(url: str) -> str:
    """Final non-empty ``/``-delimited segment of the URL's path ('' if none)"""
    path = urlsplit(url).path
    segments = [segment for segment in path.split("/") if segment]
    return segments[-1] if segments else ""


def is_signed_param(key: str) -> bool:
    return key in SIGNED_PARAMS or key.startswith("params[")


def sign_params(params: Iterable[Tuple[str, str]], secret: str) -> str:
    """HMAC-SHA256 over the sorted, url-encoded tracking fields"""
    items = sorted((key, str(value)) for key, value in params if is_signed_param(key))
    message = urlencode(items).encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(params: Mapping[str, str], secret: str) -> bool:
    signature = params.get(SIGNATURE_PARAM)
    if not signature:
        return False
    expected = sign_params(params.items(), secret)
    return hmac.compare_digest(signature, expected)


class TrackingUrlGenerator:
    """
    Builds page-view and event tracking URLs under ``tracking_route_prefix``.

    The trailing file name (last segment of the target's path) only makes
    the link readable in logs; the routes ignore it.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def page_view_tracking_url(self, url: str, title: str = "") -> str:
        params = {
            "url": url,
            "title": title,
        }
        tracking_url = self._build(PAGE_VIEW_ROUTE, url, params)
        logger.info("Created page view tracking URL: %s", tracking_url)
        return tracking_url

    def event_tracking_url(
        self,
        url: str,
        category: str = "",
        action: str = "",
        label: str = "",
        value: int = 0,
    ) -> str:
        params = {
            "url": url,
            "eventCategory": category,
            "eventAction": action,
            "eventLabel": label,
            "eventValue": str(int(value)),
        }
        tracking_url = self._build(EVENT_ROUTE, url, params)
        logger.info("Created event tracking URL: %s", tracking_url)
        return tracking_url

    def _build(self, route: str, target_url: str, params: dict) -> str:
        if self.settings.sign_tracking_urls:
            params[SIGNATURE_PARAM] = sign_params(params.items(), self.settings.secret_key)

        base = self.settings.base_url.rstrip("/")
        prefix = "/" + self.settings.tracking_route_prefix.strip("/")
        path = f"{prefix}/{route}"

        file_name = last_path_segment(target_url)
        if file_name:
            path = f"{path}/{quote(file_name, safe='')}"

        return f"{base}{path}?{urlencode(params)}"
