"""
UTM campaign parameters with session persistence.
"""

from typing import Any, Callable, Mapping, Optional

from tracking_app.config import Settings
from tracking_app.models.hit import CampaignParams

# CampaignParams field -> query/session key
UTM_KEYS = {
    "source": "utm_source",
    "medium": "utm_medium",
    "name": "utm_campaign",
    "content": "utm_content",
}


class CampaignContext:
    """
    Resolves campaign attribution for a request.

    Each UTM key is resolved on its own: the current request wins, otherwise
    the value remembered in the session is used. Values taken from the request
    are written back to the session so later page views in the same visit
    keep their attribution.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def resolve(
        self,
        request_params: Mapping[str, str],
        session_get: Optional[Callable[[str], Any]] = None,
        session_set: Optional[Callable[[str, Any], None]] = None,
    ) -> CampaignParams:
        if not self.settings.persist_campaign_params:
            session_get = session_set = None

        values = {}
        for field, key in UTM_KEYS.items():
            value = request_params.get(key) or None
            if value is not None:
                if session_set is not None:
                    session_set(key, value)
            elif session_get is not None:
                value = session_get(key) or None
            values[field] = value

        return CampaignParams(**values)
