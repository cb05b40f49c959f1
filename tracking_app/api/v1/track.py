import json
import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse

from tracking_app.config import Settings, get_settings
from tracking_app.dependencies import get_tracker
from tracking_app.services.tracker import AnalyticsTracker
from tracking_app.services.tracking_urls import verify_signature

logger = logging.getLogger(__name__)

router = APIRouter(tags=["track"])

# Paths used by links that were mailed out before the /track routes existed
legacy_router = APIRouter(prefix="/instantanalytics", tags=["track"], include_in_schema=False)


def _check_signature(request: Request, settings: Settings) -> None:
    if not settings.verify_tracking_signatures:
        return
    if not verify_signature(dict(request.query_params), settings.secret_key):
        logger.warning("Rejected tracking URL with bad signature: %s", request.url.path)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid tracking URL signature"
        )


def _to_int(value) -> int:
    # int(float("1e400")) overflows; "nan" and "inf" are not numbers either
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            logger.warning("Ignoring non-numeric event value: %r", value)
            return 0


def _event_params_from_request(request: Request, params: Optional[str]) -> Optional[Dict]:
    """
    The event fields may come as one ``params`` blob: either a JSON object
    or PHP-style ``params[action]=..`` keys.
    """
    if params:
        try:
            data = json.loads(params)
        except ValueError:
            logger.warning("Ignoring malformed params blob: %r", params)
            return None
        if not isinstance(data, dict):
            logger.warning("Ignoring params blob that is not an object: %r", params)
            return None
        return data

    bracketed = {
        key[len("params["):-1]: value
        for key, value in request.query_params.items()
        if key.startswith("params[") and key.endswith("]")
    }
    return bracketed or None


def _redirect(url: str) -> RedirectResponse:
    # Status 200 (not 302) is what existing email links expect
    return RedirectResponse(url=url, status_code=status.HTTP_200_OK)


@router.get("/page-view")
@router.get("/page-view/{filename}")
@legacy_router.get("/pageViewTrack")
@legacy_router.get("/pageViewTrack/{filename}")
async def track_page_view_url(
    request: Request,
    url: str,
    title: str = "",
    filename: Optional[str] = None,
    tracker: AnalyticsTracker = Depends(get_tracker),
    settings: Settings = Depends(get_settings)
):
    """
    Record a page view for ``url`` and redirect to it.

    ``filename`` is only there to make the link readable.
    """
    _check_signature(request, settings)
    tracker.on_page_render_completed(url, title)
    return _redirect(url)


@router.get("/event")
@router.get("/event/{filename}")
@legacy_router.get("/eventTrack")
@legacy_router.get("/eventTrack/{filename}")
async def track_event_url(
    request: Request,
    url: str,
    event_category: str = Query("", alias="eventCategory"),
    event_action: str = Query("", alias="eventAction"),
    event_label: str = Query("", alias="eventLabel"),
    event_value: str = Query("0", alias="eventValue"),
    params: Optional[str] = None,
    filename: Optional[str] = None,
    tracker: AnalyticsTracker = Depends(get_tracker),
    settings: Settings = Depends(get_settings)
):
    """Record an event for ``url`` and redirect to it."""
    _check_signature(request, settings)

    blob = _event_params_from_request(request, params)
    if blob is None:
        blob = {
            "category": event_category,
            "action": event_action,
            "label": event_label,
            "value": event_value,
        }

    tracker.on_custom_event(
        category=str(blob.get("category") or ""),
        action=str(blob.get("action") or ""),
        label=str(blob.get("label") or ""),
        value=_to_int(blob.get("value", 0)),
        path=url,
    )
    return _redirect(url)
