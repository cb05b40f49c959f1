from fastapi import APIRouter, Depends, status
from tracking_app.schemas.tracking_url import (
    EventTrackingUrlCreate,
    PageViewTrackingUrlCreate,
    TrackingUrlResponse,
)
from tracking_app.services.tracking_urls import TrackingUrlGenerator
from tracking_app.dependencies import get_tracking_url_generator

router = APIRouter(prefix="/tracking-urls", tags=["tracking-urls"])


@router.post("/page-view", response_model=TrackingUrlResponse, status_code=status.HTTP_201_CREATED)
async def create_page_view_tracking_url(
    data: PageViewTrackingUrlCreate,
    generator: TrackingUrlGenerator = Depends(get_tracking_url_generator)
):
    """Create a page view tracking URL (e.g. for a link in an email)"""
    url = str(data.url)
    return TrackingUrlResponse(url=url, tracking_url=generator.page_view_tracking_url(url, data.title))


@router.post("/event", response_model=TrackingUrlResponse, status_code=status.HTTP_201_CREATED)
async def create_event_tracking_url(
    data: EventTrackingUrlCreate,
    generator: TrackingUrlGenerator = Depends(get_tracking_url_generator)
):
    """Create an event tracking URL"""
    url = str(data.url)
    tracking_url = generator.event_tracking_url(url, data.category, data.action, data.label, data.value)
    return TrackingUrlResponse(url=url, tracking_url=tracking_url)
