"""
Maps commerce occurrences (order completed, cart changes) to event hits.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from tracking_app.config import Settings

COMMERCE_CATEGORY = "Commerce"


class CommerceEventKind(Enum):
    PURCHASE = "purchase"
    ADD_TO_CART = "add_to_cart"
    REMOVE_FROM_CART = "remove_from_cart"


class LineItemSummary(BaseModel):
    """What the shop tells us about one cart line."""

    sku: str
    name: str = ""
    price: float = 0.0
    quantity: int = 1
    category: Optional[str] = None
    brand: Optional[str] = None


class OrderSummary(BaseModel):
    """What the shop tells us about a completed order."""

    reference: str
    total: float = 0.0
    tax: float = 0.0
    shipping: float = 0.0
    currency: str = "USD"
    coupon_code: Optional[str] = None
    line_items: List[LineItemSummary] = Field(default_factory=list)


@dataclass(frozen=True)
class EventParams:
    category: str
    action: str
    label: str
    value: int


class CommerceAdapter:
    """
    Turns commerce summaries into event parameters for HitBuilder.build_event.

    Returns None when the matching ``auto_send_*`` setting is off.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def to_event(
        self,
        kind: CommerceEventKind,
        summary: Union[OrderSummary, LineItemSummary],
    ) -> Optional[EventParams]:
        if kind == CommerceEventKind.PURCHASE:
            return self.order_complete(summary)
        if kind == CommerceEventKind.ADD_TO_CART:
            return self.add_to_cart(summary)
        if kind == CommerceEventKind.REMOVE_FROM_CART:
            return self.remove_from_cart(summary)
        raise ValueError(f"Unknown commerce event: {kind}")

    def order_complete(self, order: OrderSummary) -> Optional[EventParams]:
        if not self.settings.auto_send_purchase_complete:
            return None
        return EventParams(COMMERCE_CATEGORY, "Purchase", order.reference, int(round(order.total)))

    def add_to_cart(self, item: LineItemSummary) -> Optional[EventParams]:
        if not self.settings.auto_send_add_to_cart:
            return None
        return EventParams(COMMERCE_CATEGORY, "Add to Cart", item.sku, item.quantity)

    def remove_from_cart(self, item: LineItemSummary) -> Optional[EventParams]:
        if not self.settings.auto_send_remove_from_cart:
            return None
        return EventParams(COMMERCE_CATEGORY, "Remove from Cart", item.sku, item.quantity)
