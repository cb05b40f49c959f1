from datetime import datetime, timezone
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

PROTOCOL_VERSION = "2"


class ClientIdentity(BaseModel):
    """Visitor identity resolved from cookies for one request."""

    client_id: str = ""
    ad_click_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class CampaignParams(BaseModel):
    """UTM campaign attribution; unset fields are omitted downstream."""

    source: Optional[str] = None
    medium: Optional[str] = None
    name: Optional[str] = None
    content: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class BaseHit(BaseModel):
    """
    Fields shared by every hit sent to the measurement endpoint.
    """

    identity: ClientIdentity
    campaign: CampaignParams = Field(default_factory=CampaignParams)

    # Request metadata
    ip: Optional[str] = Field(None, description="Client IP address")
    user_agent: str = Field(..., description="User agent string")
    document_hostname: str = Field("", description="Host the page was served from")
    document_referrer: str = Field("", description="HTTP referer")
    document_path: str = Field("/", description="Root-relative page path")
    affiliation: Optional[str] = Field(None, description="Site name from site metadata")

    protocol_version: str = PROTOCOL_VERSION
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)


class PageViewHit(BaseHit):
    kind: Literal["pageview"] = "pageview"
    document_title: str = ""


class EventHit(BaseHit):
    kind: Literal["event"] = "event"
    category: str = ""
    action: str = ""
    label: str = ""
    value: int = 0


Hit = Union[PageViewHit, EventHit]
