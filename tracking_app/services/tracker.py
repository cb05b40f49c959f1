"""
Per-request entry point into the analytics pipeline.
"""

import logging
from typing import Optional, Union

from tracking_app.config import Settings
from tracking_app.models.context import RequestContext
from tracking_app.models.hit import CampaignParams, ClientIdentity, EventHit, Hit, PageViewHit
from tracking_app.queue.event_queue import EventQueue
from tracking_app.services.campaign import CampaignContext
from tracking_app.services.commerce import CommerceAdapter, CommerceEventKind, LineItemSummary, OrderSummary
from tracking_app.services.exclusion import ExclusionDecision, ExclusionEngine
from tracking_app.services.hit_builder import HitBuilder, SiteMetadata
from tracking_app.services.identity import IdentityResolver
from tracking_app.services.tracking_urls import TrackingUrlGenerator
from tracking_app.session.cookies import CookieStore
from tracking_app.session.strategies import SessionData

logger = logging.getLogger(__name__)


class AnalyticsTracker:
    """
    Tracker bound to one request.

    The host calls the ``on_*`` methods when something trackable happens;
    each one checks the exclusion rules, builds a hit and queues it. The
    exclusion decision, identity and campaign are worked out once and reused
    by every hit of the request, so each cookie is written at most once.

    Flushing the queue is not the tracker's job; the middleware hands
    ``queue`` to the Dispatcher at end of request.
    """

    def __init__(
        self,
        ctx: RequestContext,
        settings: Settings,
        cookies: CookieStore,
        session: Optional[SessionData] = None,
        queue: Optional[EventQueue] = None,
        exclusion: Optional[ExclusionEngine] = None,
        site_metadata: Optional[SiteMetadata] = None,
        commerce: Optional[CommerceAdapter] = None,
    ):
        self.ctx = ctx
        self.settings = settings
        self.cookies = cookies
        self.session = session if session is not None else SessionData()
        self.queue = queue if queue is not None else EventQueue()

        self.exclusion = exclusion or ExclusionEngine(settings)
        self.identity_resolver = IdentityResolver(settings)
        self.campaign_context = CampaignContext(settings)
        self.hit_builder = HitBuilder(settings, site_metadata)
        self.commerce = commerce or CommerceAdapter(settings)
        self.urls = TrackingUrlGenerator(settings)

        self._decision: Optional[ExclusionDecision] = None
        self._identity: Optional[ClientIdentity] = None
        self._campaign: Optional[CampaignParams] = None

    @property
    def decision(self) -> ExclusionDecision:
        if self._decision is None:
            self._decision = self.exclusion.evaluate(self.ctx)
        return self._decision

    def should_send(self) -> bool:
        return self.decision.send

    @property
    def identity(self) -> ClientIdentity:
        if self._identity is None:
            self._identity = self.identity_resolver.resolve(self.ctx.query_params, self.cookies)
        return self._identity

    @property
    def campaign(self) -> CampaignParams:
        if self._campaign is None:
            self._campaign = self.campaign_context.resolve(
                self.ctx.query_params,
                self.session.get,
                self.session.set,
            )
        return self._campaign

    # Trigger points

    def on_page_render_completed(self, path: str = "", title: str = "") -> Optional[PageViewHit]:
        if not self._ready():
            return None
        hit = self.hit_builder.build_page_view(path, title, self.ctx, self.identity, self.campaign)
        return self._enqueue(hit)

    def on_custom_event(
        self,
        category: str = "",
        action: str = "",
        label: str = "",
        value: int = 0,
        path: str = "",
    ) -> Optional[EventHit]:
        if not self._ready():
            return None
        hit = self.hit_builder.build_event(
            category, action, label, value, self.ctx, self.identity, self.campaign, path=path
        )
        return self._enqueue(hit)

    def on_commerce_event(
        self,
        kind: CommerceEventKind,
        summary: Union[OrderSummary, LineItemSummary],
    ) -> Optional[EventHit]:
        params = self.commerce.to_event(kind, summary)
        if params is None:
            return None
        return self.on_custom_event(params.category, params.action, params.label, params.value)

    # Tracking URLs

    def page_view_tracking_url(self, url: str, title: str = "") -> str:
        return self.urls.page_view_tracking_url(url, title)

    def event_tracking_url(self, url: str, category: str = "", action: str = "", label: str = "", value: int = 0) -> str:
        return self.urls.event_tracking_url(url, category, action, label, value)

    def _ready(self) -> bool:
        if not self.should_send():
            return False
        if not self.hit_builder.is_configured:
            logger.debug("Analytics not configured; skipping hit")
            return False
        if not self.identity.client_id:
            logger.debug("No client ID for %s; skipping hit", self.ctx.client_ip)
            return False
        return True

    def _enqueue(self, hit: Optional[Hit]) -> Optional[Hit]:
        if hit is None:
            return None
        if not self.queue.enqueue(hit):
            return None
        return hit
