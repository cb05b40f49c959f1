"""
Measurement transport strategies using Strategy Pattern.

Allows switching between different delivery targets:
- Measurement Protocol: GA4 collection endpoint over HTTPS (production)
- In-Memory: records payloads (development/testing)
- Null: discards everything
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple
import asyncio
import logging
import re

from tracking_app.models.hit import EventHit, Hit, PageViewHit

logger = logging.getLogger(__name__)

_EVENT_NAME_INVALID = re.compile(r"[^a-z0-9_]+")


class TransportError(Exception):
    """Raised when a hit could not be delivered."""


def event_name(action: str) -> str:
    """GA4 event names: letters, digits and underscores, max 40 chars, starting with a letter"""
    name = _EVENT_NAME_INVALID.sub("_", action.strip().lower()).strip("_")
    if not name or not name[0].isalpha():
        name = f"event_{name}".rstrip("_")
    return name[:40]


def measurement_payload(hit: Hit) -> Dict[str, Any]:
    """
    Map a hit to a Measurement Protocol request body.

    Unset campaign fields and empty optional values are left out.
    """
    params: Dict[str, Any] = {
        "page_path": hit.document_path,
        "page_referrer": hit.document_referrer,
    }
    if hit.document_hostname:
        params["page_location"] = f"https://{hit.document_hostname}{hit.document_path}"
        params["page_hostname"] = hit.document_hostname

    campaign = hit.campaign
    for key, value in (
        ("source", campaign.source),
        ("medium", campaign.medium),
        ("campaign", campaign.name),
        ("content", campaign.content),
        ("gclid", hit.identity.ad_click_id),
        ("affiliation", hit.affiliation),
    ):
        if value:
            params[key] = value

    if isinstance(hit, PageViewHit):
        name = "page_view"
        params["page_title"] = hit.document_title
    elif isinstance(hit, EventHit):
        name = event_name(hit.action)
        params["event_category"] = hit.category
        params["event_action"] = hit.action
        params["event_label"] = hit.label
        params["value"] = hit.value
    else:
        raise TypeError(f"Unsupported hit type: {type(hit).__name__}")

    payload: Dict[str, Any] = {
        "client_id": hit.identity.client_id,
        "timestamp_micros": int(hit.timestamp.timestamp() * 1_000_000),
        "user_agent": hit.user_agent,
        "events": [{"name": name, "params": params}],
    }
    if hit.ip:
        payload["ip_override"] = hit.ip
    return payload


class TransportStrategy(ABC):
    """
    Abstract base class for measurement transports.

    ``send`` delivers a single hit and raises ``TransportError`` on failure;
    retrying and error swallowing belong to the dispatcher.
    """

    @abstractmethod
    async def send(self, hit: Hit) -> None:
        """
        Deliver one hit.

        Args:
            hit: Hit to deliver

        Raises:
            TransportError: if delivery failed
        """
        pass

    async def close(self) -> None:
        """Release any held connections"""
        return None


class MeasurementProtocolTransport(TransportStrategy):
    """
    GA4 Measurement Protocol over HTTPS.

    One POST per hit to ``{endpoint}?measurement_id=..&api_secret=..``.
    ``requests`` is blocking, so each POST runs in a worker thread and
    concurrent sends from one flush do not wait on each other.
    """

    def __init__(
        self,
        measurement_id: str,
        api_secret: str,
        endpoint: str = "https://www.google-analytics.com/mp/collect",
        timeout: Tuple[float, float] = (2.0, 5.0),
        session=None,
    ):
        """
        Args:
            measurement_id: GA4 measurement ID (G-XXXXXXX)
            api_secret: Measurement Protocol API secret
            endpoint: Collection endpoint URL
            timeout: (connect, read) timeout in seconds
            session: requests.Session to reuse connections (created if omitted)
        """
        import requests

        self.measurement_id = measurement_id
        self.api_secret = api_secret
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()

    async def send(self, hit: Hit) -> None:
        payload = measurement_payload(hit)
        await asyncio.to_thread(self._post, payload)

    def _post(self, payload: Dict[str, Any]) -> None:
        import requests

        try:
            response = self.session.post(
                self.endpoint,
                params={
                    "measurement_id": self.measurement_id,
                    "api_secret": self.api_secret,
                },
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"Measurement request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"Measurement endpoint returned {response.status_code}: {response.text[:200]}"
            )

    async def close(self) -> None:
        self.session.close()


class InMemoryTransport(TransportStrategy):
    """
    Keeps every payload in a list instead of sending it.

    Used in development/testing environments.
    """

    def __init__(self):
        self.sent: List[Hit] = []
        self.payloads: List[Dict[str, Any]] = []

    async def send(self, hit: Hit) -> None:
        self.payloads.append(measurement_payload(hit))
        self.sent.append(hit)

    def clear(self) -> None:
        self.sent.clear()
        self.payloads.clear()


class NullTransport(TransportStrategy):
    """
    Transport that does nothing.

    Every send succeeds but nothing leaves the process.
    """

    async def send(self, hit: Hit) -> None:
        return None
