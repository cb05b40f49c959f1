"""
Builds hits from request context, identity and campaign attribution.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit
import logging

from tracking_app.config import Settings
from tracking_app.models.context import RequestContext
from tracking_app.models.hit import CampaignParams, ClientIdentity, EventHit, PageViewHit

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows; U; Windows NT 5.1; en-US; rv:1.8.1.13) "
    "Gecko/20080311 Firefox/2.0.0.13"
)


@dataclass(frozen=True)
class SiteMetadata:
    """Site-wide SEO metadata; ``site_name`` becomes the hit affiliation."""

    site_name: str
    render_enabled: bool = True


def _is_absolute_url(url: str) -> bool:
    parts = urlsplit(url)
    return bool(parts.scheme) and bool(parts.netloc)


def document_path_from_url(url: str, strip_query_string: bool = True) -> str:
    """
    Return a sanitized, root-relative document path.

    - absolute URLs lose scheme and host (the query string is kept)
    - protocol-relative URLs lose one leading ``/``
    - the query string is dropped when ``strip_query_string`` is set
    - an empty result becomes ``/``
    """
    if _is_absolute_url(url):
        parts = urlsplit(url)
        url = parts.path or "/"
        if parts.query:
            url = f"{url}?{parts.query}"

    if url.startswith("//"):
        url = url[1:]

    if strip_query_string:
        url = url.split("?", 1)[0]

    if url == "":
        return "/"

    if url.startswith("//"):
        url = "/" + url.lstrip("/")
    elif not url.startswith("/"):
        url = "/" + url

    return url


class HitBuilder:
    """
    Composes page-view and event hits.

    Both builders return None when no measurement ID is configured; that is
    how an unconfigured install says "nothing to send".
    """

    def __init__(self, settings: Settings, site_metadata: Optional[SiteMetadata] = None):
        self.settings = settings
        self.site_metadata = site_metadata

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.google_analytics_measurement_id.strip())

    def document_path(self, url: str, ctx: RequestContext) -> str:
        """Normalize ``url``, or the current request path when ``url`` is empty"""
        if url == "":
            url = ctx.path
        return document_path_from_url(url, self.settings.strip_query_string)

    def build_page_view(
        self,
        path: str,
        title: str,
        ctx: RequestContext,
        identity: ClientIdentity,
        campaign: CampaignParams,
    ) -> Optional[PageViewHit]:
        common = self._common_fields(ctx, identity, campaign)
        if common is None:
            return None

        document_path = self.document_path(path, ctx)
        hit = PageViewHit(document_path=document_path, document_title=title or "", **common)
        logger.info("Created page view hit for: %s - %s", document_path, title)
        return hit

    def build_event(
        self,
        category: str,
        action: str,
        label: str,
        value: int,
        ctx: RequestContext,
        identity: ClientIdentity,
        campaign: CampaignParams,
        path: str = "",
    ) -> Optional[EventHit]:
        common = self._common_fields(ctx, identity, campaign)
        if common is None:
            return None

        hit = EventHit(
            document_path=self.document_path(path, ctx),
            category=category or "",
            action=action or "",
            label=label or "",
            value=int(value or 0),
            **common,
        )
        logger.info("Created event hit for: %s - %s - %s - %s", category, action, label, value)
        return hit

    def _common_fields(self, ctx: RequestContext, identity: ClientIdentity, campaign: CampaignParams):
        if not self.is_configured:
            logger.debug("No measurement ID configured; not building a hit")
            return None

        affiliation = None
        if self.site_metadata is not None and self.site_metadata.render_enabled:
            affiliation = self.site_metadata.site_name or None

        return dict(
            identity=identity,
            campaign=campaign,
            ip=ctx.client_ip,
            user_agent=ctx.user_agent or DEFAULT_USER_AGENT,
            document_hostname=self._hostname(ctx),
            document_referrer=ctx.referrer or "",
            affiliation=affiliation,
        )

    def _hostname(self, ctx: RequestContext) -> str:
        if ctx.server_name:
            return ctx.server_name
        try:
            hostname = urlsplit(self.settings.base_url).hostname
        except ValueError as e:
            logger.warning("Could not parse base_url %r: %s", self.settings.base_url, e)
            return ""
        if not hostname:
            logger.warning("No hostname for hit; base_url %r has no host", self.settings.base_url)
            return ""
        return hostname
