"""Package exports for marketplace domain."""
from .models import (
    ItemCondition,
    Listing,
    ListingStatus,
    Order,
    OrderStatus,
    PickupMethod,
)

__all__ = [
    "ItemCondition",
    "Listing",
    "ListingStatus",
    "Order",
    "OrderStatus",
    "PickupMethod",
]
