"""
Binds the analytics pipeline to the request lifecycle.

For every request AnalyticsMiddleware:
1. snapshots the request into a RequestContext
2. loads the visitor's session and builds an AnalyticsTracker
3. runs the route (which may queue hits through the tracker)
4. queues the automatic page view for HTML pages
5. writes cookies and the session onto the response
6. attaches the flush as a background task, so hits are sent only after
   the response has gone out
"""

import logging
import uuid
from typing import Dict, Optional

from starlette.background import BackgroundTasks
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from tracking_app.config import Settings, get_settings
from tracking_app.dependencies import (
    get_crawler_classifier,
    get_session_store,
    get_site_metadata,
    get_transport,
    get_user_provider,
    provide,
)
from tracking_app.hit_processor.dispatcher import Dispatcher
from tracking_app.models.context import AuthenticatedUser, RequestContext
from tracking_app.services.exclusion import ExclusionEngine
from tracking_app.services.tracker import AnalyticsTracker
from tracking_app.session.cookies import CookieJar
from tracking_app.session.strategies import SessionData, SessionStore

logger = logging.getLogger(__name__)


def client_ip(request: Request, trust_forwarded_for: bool = False) -> Optional[str]:
    """Peer address, or the first X-Forwarded-For entry when behind a trusted proxy"""
    xff = request.headers.get("x-forwarded-for") if trust_forwarded_for else None
    if xff:
        return xff.split(",")[0].strip()
    return request.client.host if request.client else None


def server_attributes(request: Request) -> Dict[str, str]:
    """CGI-style view of the request, matched against ``server_excludes``"""
    server = {
        "REQUEST_METHOD": request.method,
        "REQUEST_URI": request.url.path + (f"?{request.url.query}" if request.url.query else ""),
        "QUERY_STRING": request.url.query,
        "SERVER_NAME": request.url.hostname or "",
    }
    if request.client:
        server["REMOTE_ADDR"] = request.client.host
    for name, value in request.headers.items():
        server["HTTP_" + name.upper().replace("-", "_")] = value
    return server


def build_request_context(
    request: Request,
    settings: Settings,
    user: Optional[AuthenticatedUser] = None,
) -> RequestContext:
    path = request.url.path
    cp_prefix = settings.cp_path_prefix.rstrip("/")
    is_cp_request = bool(cp_prefix) and (path == cp_prefix or path.startswith(cp_prefix + "/"))

    return RequestContext(
        path=path,
        query_params=dict(request.query_params),
        full_url=str(request.url),
        user_agent=request.headers.get("user-agent"),
        client_ip=client_ip(request, settings.trust_forwarded_for),
        referrer=request.headers.get("referer"),
        server_name=request.url.hostname or "",
        user=user,
        is_cp_request=is_cp_request,
        is_live_preview=any(param in request.query_params for param in settings.live_preview_params),
        server=server_attributes(request),
    )


class AnalyticsMiddleware(BaseHTTPMiddleware):
    """End-of-request extension point for the analytics pipeline."""

    async def dispatch(self, request: Request, call_next) -> Response:
        settings: Settings = provide(request, get_settings)
        session_store: SessionStore = provide(request, get_session_store)

        user = provide(request, get_user_provider)(request)
        ctx = build_request_context(request, settings, user)

        session_id = request.cookies.get(settings.session_cookie_name)
        session_data = await session_store.load(session_id) if session_id else {}
        session = SessionData(session_id, session_data)

        tracker = AnalyticsTracker(
            ctx=ctx,
            settings=settings,
            cookies=CookieJar(request.cookies),
            session=session,
            exclusion=ExclusionEngine(settings, provide(request, get_crawler_classifier)),
            site_metadata=provide(request, get_site_metadata, settings),
        )
        request.state.analytics = tracker

        response = await call_next(request)

        if self._is_page_render(request, response, settings) and not tracker.queue.has_page_view():
            tracker.on_page_render_completed()

        tracker.cookies.apply(response)
        await self._save_session(session, session_store, response, settings)

        if len(tracker.queue):
            dispatcher = Dispatcher(provide(request, get_transport), settings)
            tasks = BackgroundTasks()
            if response.background is not None:
                tasks.add_task(response.background)
            tasks.add_task(dispatcher.flush, tracker.queue)
            response.background = tasks

        return response

    @staticmethod
    def _is_page_render(request: Request, response: Response, settings: Settings) -> bool:
        if not settings.auto_send_page_view or request.method != "GET":
            return False
        if not 200 <= response.status_code < 300:
            return False
        return response.headers.get("content-type", "").startswith("text/html")

    @staticmethod
    async def _save_session(
        session: SessionData,
        store: SessionStore,
        response: Response,
        settings: Settings,
    ) -> None:
        if not session.modified and (session.is_new or not session.to_dict()):
            return

        if session.is_new:
            session.session_id = uuid.uuid4().hex
            response.set_cookie(
                key=settings.session_cookie_name,
                value=session.session_id,
                path="/",
                httponly=True,
                samesite="lax",
            )

        # Saving also restarts the session's expiry
        await store.save(session.session_id, session.to_dict(), settings.session_ttl)
