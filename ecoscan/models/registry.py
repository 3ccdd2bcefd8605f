"""Aggregated imports of every ORM model so mappers and Alembic see the full schema."""

from ecoscan.modules.accounts.models import Account
from ecoscan.modules.marketplace.models import (
    Listing,
    ListingStatus,
    Order,
    OrderStatus,
)
from ecoscan.modules.messaging.models import Message
from ecoscan.modules.notifications.models import Notification, NotificationKind
from ecoscan.modules.scans.models import (
    DisposalChoice,
    ItemCategory,
    ScanRecord,
    ScanStatus,
)

__all__ = [
    "Account",
    "DisposalChoice",
    "ItemCategory",
    "Listing",
    "ListingStatus",
    "Message",
    "Notification",
    "NotificationKind",
    "Order",
    "OrderStatus",
    "ScanRecord",
    "ScanStatus",
]
