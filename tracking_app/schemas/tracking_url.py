from pydantic import BaseModel, HttpUrl, Field


class TrackingUrlBase(BaseModel):
    url: HttpUrl = Field(..., description="Where the tracking URL redirects to")


class PageViewTrackingUrlCreate(TrackingUrlBase):
    title: str = Field("", description="Page title sent with the page view")


class EventTrackingUrlCreate(TrackingUrlBase):
    category: str = ""
    action: str = ""
    label: str = ""
    value: int = 0


class TrackingUrlResponse(BaseModel):
    url: str
    tracking_url: str
