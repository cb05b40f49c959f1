"""
Tests for the event queue, dispatcher and measurement transports.
"""
import asyncio

import pytest
import requests

from conftest import make_settings
from tracking_app.hit_processor.dispatcher import Dispatcher
from tracking_app.models.hit import CampaignParams, ClientIdentity, EventHit, PageViewHit
from tracking_app.queue.event_queue import EventQueue
from tracking_app.transport.strategies import (
    InMemoryTransport,
    MeasurementProtocolTransport,
    TransportError,
    TransportStrategy,
    event_name,
    measurement_payload,
)


def page_view(path: str = "/", title: str = "Home") -> PageViewHit:
    return PageViewHit(
        identity=ClientIdentity(client_id="111.222"),
        user_agent="pytest",
        document_hostname="www.example.com",
        document_path=path,
        document_title=title,
        ip="10.0.0.1",
    )


def event(action: str = "Play", value: int = 1) -> EventHit:
    return EventHit(
        identity=ClientIdentity(client_id="111.222", ad_click_id="click-1"),
        campaign=CampaignParams(source="ads", name="spring"),
        user_agent="pytest",
        document_path="/video",
        category="Video",
        action=action,
        label="intro",
        value=value,
    )


class FailingTransport(TransportStrategy):
    def __init__(self):
        self.calls = 0

    async def send(self, hit):
        self.calls += 1
        raise TransportError("endpoint down")


class FlakyTransport(TransportStrategy):
    """Fails every other hit"""

    def __init__(self):
        self.calls = 0

    async def send(self, hit):
        self.calls += 1
        if self.calls % 2 == 0:
            raise ConnectionError("reset by peer")


class SlowTransport(TransportStrategy):
    async def send(self, hit):
        await asyncio.sleep(5)


class OneSlowTransport(TransportStrategy):
    """Hangs on /slow; /fast is delivered (or fails) at once"""

    def __init__(self, fail_fast: bool = False):
        self.fail_fast = fail_fast
        self.sent = []

    async def send(self, hit):
        if hit.document_path == "/slow":
            await asyncio.sleep(5)
        if self.fail_fast:
            raise TransportError("endpoint down")
        self.sent.append(hit)


class TestEventQueue:
    """Test the per-request queue"""

    def test_keeps_order_and_duplicates(self):
        queue = EventQueue()
        first, second = page_view("/a"), page_view("/b")

        queue.enqueue(first)
        queue.enqueue(second)
        queue.enqueue(first)

        assert [hit.document_path for hit in queue.drain()] == ["/a", "/b", "/a"]

    def test_drains_once(self):
        queue = EventQueue()
        queue.enqueue(page_view())

        assert len(queue.drain()) == 1
        assert queue.drain() == []
        assert queue.drained

    def test_enqueue_after_drain_is_dropped(self):
        queue = EventQueue()
        queue.drain()

        assert queue.enqueue(page_view()) is False
        assert len(queue) == 0

    def test_has_page_view(self):
        queue = EventQueue()
        queue.enqueue(event())
        assert not queue.has_page_view()

        queue.enqueue(page_view())
        assert queue.has_page_view()


class TestDispatcher:
    """Test end-of-request flushing"""

    def test_delivers_every_hit(self):
        transport = InMemoryTransport()
        queue = EventQueue()
        for hit in (page_view(), event(), event()):
            queue.enqueue(hit)

        report = asyncio.run(Dispatcher(transport, make_settings()).flush(queue))

        assert (report.attempted, report.delivered, report.failed) == (3, 3, 0)
        assert len(transport.sent) == 3

    def test_all_failures_still_attempted(self):
        """3 queued hits mean 3 attempts, and flush returns even if all fail"""
        transport = FailingTransport()
        queue = EventQueue()
        for _ in range(3):
            queue.enqueue(event())

        report = asyncio.run(Dispatcher(transport, make_settings()).flush(queue))

        assert transport.calls == 3
        assert (report.attempted, report.delivered, report.failed) == (3, 0, 3)

    def test_one_failure_does_not_block_others(self):
        transport = FlakyTransport()
        queue = EventQueue()
        for _ in range(4):
            queue.enqueue(page_view())

        report = asyncio.run(Dispatcher(transport, make_settings()).flush(queue))

        assert transport.calls == 4
        assert (report.delivered, report.failed) == (2, 2)

    def test_empty_queue(self):
        report = asyncio.run(Dispatcher(FailingTransport(), make_settings()).flush(EventQueue()))
        assert report.attempted == 0

    def test_slow_transport_does_not_hang_flush(self):
        queue = EventQueue()
        queue.enqueue(page_view())

        report = asyncio.run(Dispatcher(SlowTransport(), make_settings(dispatch_budget_seconds=0.05)).flush(queue))

        assert report.failed == 1

    def test_hits_delivered_before_time_limit_count_as_delivered(self):
        """Only the sends still running at the time limit are given up"""
        transport = OneSlowTransport()
        queue = EventQueue()
        queue.enqueue(page_view("/fast"))
        queue.enqueue(page_view("/slow"))

        report = asyncio.run(Dispatcher(transport, make_settings(dispatch_budget_seconds=0.05)).flush(queue))

        assert (report.attempted, report.delivered, report.failed) == (2, 1, 1)
        assert [hit.document_path for hit in transport.sent] == ["/fast"]

    def test_time_limit_with_a_failure(self):
        transport = OneSlowTransport(fail_fast=True)
        queue = EventQueue()
        queue.enqueue(page_view("/fast"))
        queue.enqueue(page_view("/slow"))

        report = asyncio.run(Dispatcher(transport, make_settings(dispatch_budget_seconds=0.05)).flush(queue))

        assert (report.delivered, report.failed) == (0, 2)

    def test_flush_drains_queue(self):
        queue = EventQueue()
        queue.enqueue(page_view())
        transport = InMemoryTransport()
        dispatcher = Dispatcher(transport, make_settings())

        asyncio.run(dispatcher.flush(queue))
        asyncio.run(dispatcher.flush(queue))

        assert len(transport.sent) == 1


class TestMeasurementPayload:
    """Test the Measurement Protocol body"""

    def test_page_view_payload(self):
        payload = measurement_payload(page_view("/blog", "Blog"))

        assert payload["client_id"] == "111.222"
        assert payload["ip_override"] == "10.0.0.1"
        assert payload["user_agent"] == "pytest"
        [body] = payload["events"]
        assert body["name"] == "page_view"
        assert body["params"]["page_title"] == "Blog"
        assert body["params"]["page_path"] == "/blog"
        assert body["params"]["page_location"] == "https://www.example.com/blog"

    def test_event_payload(self):
        payload = measurement_payload(event("Add to Cart", 3))

        [body] = payload["events"]
        assert body["name"] == "add_to_cart"
        assert body["params"]["event_category"] == "Video"
        assert body["params"]["value"] == 3
        assert body["params"]["source"] == "ads"
        assert body["params"]["campaign"] == "spring"
        assert body["params"]["gclid"] == "click-1"
        assert "medium" not in body["params"]
        assert "ip_override" not in payload

    @pytest.mark.parametrize("action, expected", [
        ("Play", "play"),
        ("Remove from Cart", "remove_from_cart"),
        ("", "event"),
        ("404 error", "event_404_error"),
    ])
    def test_event_name(self, action, expected):
        assert event_name(action) == expected


class FakeResponse:
    def __init__(self, status_code: int, text: str = ""):
        self.status_code = status_code
        self.text = text


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []
        self.closed = False

    def post(self, url, params=None, json=None, timeout=None):
        self.requests.append({"url": url, "params": params, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


class TestMeasurementProtocolTransport:
    """Test the HTTPS transport with a stubbed requests session"""

    def transport(self, session) -> MeasurementProtocolTransport:
        return MeasurementProtocolTransport(
            measurement_id="G-TEST123",
            api_secret="api-secret",
            endpoint="https://collect.example.com/mp/collect",
            timeout=(1.0, 2.0),
            session=session,
        )

    def test_posts_one_request_per_hit(self):
        session = FakeSession(FakeResponse(204))

        asyncio.run(self.transport(session).send(page_view()))

        [sent] = session.requests
        assert sent["url"] == "https://collect.example.com/mp/collect"
        assert sent["params"] == {"measurement_id": "G-TEST123", "api_secret": "api-secret"}
        assert sent["json"]["client_id"] == "111.222"
        assert sent["timeout"] == (1.0, 2.0)

    def test_non_2xx_raises(self):
        session = FakeSession(FakeResponse(500, "boom"))

        with pytest.raises(TransportError):
            asyncio.run(self.transport(session).send(page_view()))

    def test_network_error_raises(self):
        session = FakeSession(error=requests.ConnectionError("no route"))

        with pytest.raises(TransportError):
            asyncio.run(self.transport(session).send(page_view()))

    def test_close_releases_session(self):
        session = FakeSession(FakeResponse(204))

        asyncio.run(self.transport(session).close())

        assert session.closed
