"""
Test configuration and fixtures for the analytics tracker.
This centralizes all test setup, making individual tests clean.
"""

from typing import Optional

import pytest
from fastapi.testclient import TestClient

from main import app
from tracking_app.config import Settings, get_settings
from tracking_app.dependencies import (
    get_crawler_classifier,
    get_session_store,
    get_transport,
    get_user_provider,
)
from tracking_app.models.context import AuthenticatedUser, RequestContext
from tracking_app.session.strategies import InMemorySessionStore
from tracking_app.transport.strategies import InMemoryTransport


def make_settings(**overrides) -> Settings:
    """Settings for tests: configured, production, no server excludes."""
    values = dict(
        environment="production",
        google_analytics_measurement_id="G-TEST123",
        google_analytics_measurement_api_secret="api-secret",
        base_url="https://www.example.com",
        require_ga_cookie_client_id=False,
        server_excludes={},
        secret_key="test-secret",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_context(**overrides) -> RequestContext:
    values = dict(
        path="/blog/post",
        full_url="https://www.example.com/blog/post",
        user_agent="Mozilla/5.0 (X11; Linux x86_64) Firefox/120.0",
        client_ip="10.0.0.1",
        referrer="https://search.example.org/",
        server_name="www.example.com",
        server={"REMOTE_ADDR": "10.0.0.1"},
    )
    values.update(overrides)
    return RequestContext(**values)


class FakeCrawler:
    """Flags user agents containing 'bot'."""

    def is_crawler(self, user_agent: Optional[str]) -> bool:
        return bool(user_agent) and "bot" in user_agent.lower()


class UserHolder:
    """Mutable slot for the user the fake auth provider reports."""

    def __init__(self):
        self.user: Optional[AuthenticatedUser] = None

    def provider(self, request) -> Optional[AuthenticatedUser]:
        return self.user


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def transport() -> InMemoryTransport:
    return InMemoryTransport()


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def users() -> UserHolder:
    return UserHolder()


def install_overrides(target_app, settings, transport, session_store, users):
    target_app.dependency_overrides[get_settings] = lambda: settings
    target_app.dependency_overrides[get_transport] = lambda: transport
    target_app.dependency_overrides[get_session_store] = lambda: session_store
    target_app.dependency_overrides[get_crawler_classifier] = lambda: FakeCrawler()
    target_app.dependency_overrides[get_user_provider] = lambda: users.provider


@pytest.fixture(scope="function")
def client(settings, transport, session_store, users):
    """
    Create a test client with settings, transport and session store overridden.
    This is the main fixture that tests will use.
    """
    install_overrides(app, settings, transport, session_store, users)

    with TestClient(app) as test_client:
        yield test_client

    # Clean up overrides
    app.dependency_overrides.clear()
