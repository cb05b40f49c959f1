"""
Domain models for the analytics pipeline.

Nothing here is persisted: hits live for one request and are then handed to
the measurement transport.
"""

from .context import AuthenticatedUser, RequestContext
from .hit import (
    BaseHit,
    CampaignParams,
    ClientIdentity,
    EventHit,
    Hit,
    PageViewHit,
    PROTOCOL_VERSION,
)

__all__ = [
    "AuthenticatedUser",
    "RequestContext",
    "BaseHit",
    "CampaignParams",
    "ClientIdentity",
    "EventHit",
    "Hit",
    "PageViewHit",
    "PROTOCOL_VERSION",
]
