"""
FastAPI dependencies for dependency injection.

This module provides the process-wide singletons (settings, session store,
transport, crawler classifier) and the per-request tracker that routes use.

Every provider here can be replaced through ``app.dependency_overrides``;
the analytics middleware resolves its collaborators the same way, so an
override applies to routes and middleware alike.
"""

from functools import lru_cache
from typing import Callable, Optional

from fastapi import Depends, Request

from tracking_app.config import Settings, get_settings
from tracking_app.models.context import AuthenticatedUser
from tracking_app.services.exclusion import CrawlerClassifier
from tracking_app.services.hit_builder import SiteMetadata
from tracking_app.services.tracker import AnalyticsTracker
from tracking_app.services.tracking_urls import TrackingUrlGenerator
from tracking_app.session.factory import SessionStoreFactory, SessionBackend
from tracking_app.session.strategies import SessionStore
from tracking_app.transport.factory import TransportFactory, TransportBackend
from tracking_app.transport.strategies import TransportStrategy

UserProvider = Callable[[Request], Optional[AuthenticatedUser]]


@lru_cache()
def get_session_store() -> SessionStore:
    """
    Get session store instance (singleton).

    Returns:
        SessionStore instance based on settings
    """
    settings = get_settings()
    return SessionStoreFactory.create(SessionBackend(settings.session_backend), settings)


@lru_cache()
def get_transport() -> TransportStrategy:
    """
    Get measurement transport instance (singleton).

    Returns:
        TransportStrategy instance based on settings
    """
    settings = get_settings()
    return TransportFactory.create(TransportBackend(settings.transport_backend), settings)


@lru_cache()
def get_crawler_classifier() -> Optional[CrawlerClassifier]:
    """Crawler classifier, or None when bot filtering is off."""
    if not get_settings().filter_bot_user_agents:
        return None
    return CrawlerClassifier()


def anonymous_user(request: Request) -> Optional[AuthenticatedUser]:
    """Default user provider: nobody is logged in."""
    return None


def get_user_provider() -> UserProvider:
    """
    Callable that reports the authenticated caller of a request.

    Host applications override this with their own authentication lookup.
    """
    return anonymous_user


def get_site_metadata(settings: Settings = Depends(get_settings)) -> Optional[SiteMetadata]:
    """Site metadata used for the hit affiliation."""
    if not settings.site_name:
        return None
    return SiteMetadata(site_name=settings.site_name)


def get_tracker(request: Request) -> AnalyticsTracker:
    """
    Get the tracker of the current request.

    It is created by AnalyticsMiddleware; using this dependency without the
    middleware installed is a programming error.
    """
    tracker = getattr(request.state, "analytics", None)
    if tracker is None:
        raise RuntimeError("AnalyticsMiddleware is not installed")
    return tracker


def get_tracking_url_generator(settings: Settings = Depends(get_settings)) -> TrackingUrlGenerator:
    return TrackingUrlGenerator(settings)


def provide(request: Request, dependency: Callable, *args):
    """Call a provider directly, honouring ``app.dependency_overrides``."""
    overrides = getattr(request.app, "dependency_overrides", {})
    return overrides.get(dependency, dependency)(*args)
