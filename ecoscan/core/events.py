"""In-process domain event bus.

Services collect events while a transaction is open and hand them to the bus only after
the commit succeeds, so subscribers never observe state that was rolled back.
Subscribers are matched by ``isinstance`` which lets a handler registered for
``DomainEvent`` see everything.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Type

logger = logging.getLogger(__name__)

audit_logger = logging.getLogger("ecoscan.audit")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DomainEvent:
    occurred_at: datetime = field(default_factory=_utcnow, kw_only=True)

    @property
    def name(self) -> str:
        return type(self).__name__

    def payload(self) -> dict:
        data = asdict(self)
        data.pop("occurred_at", None)
        return data


@dataclass(frozen=True)
class ScanRecorded(DomainEvent):
    scan_id: int
    account_id: int
    category: str
    status: str
    final_points: int


@dataclass(frozen=True)
class ScanApproved(DomainEvent):
    scan_id: int
    account_id: int
    final_points: int


@dataclass(frozen=True)
class ScanRejected(DomainEvent):
    scan_id: int
    account_id: int


@dataclass(frozen=True)
class LevelUp(DomainEvent):
    account_id: int
    old_level: int
    new_level: int


@dataclass(frozen=True)
class ListingPublished(DomainEvent):
    listing_id: int
    seller_id: int


@dataclass(frozen=True)
class ListingRejected(DomainEvent):
    listing_id: int
    seller_id: int


@dataclass(frozen=True)
class ListingSold(DomainEvent):
    listing_id: int
    order_id: int
    buyer_id: int
    seller_id: int
    price_points: int


@dataclass(frozen=True)
class GuestMigrated(DomainEvent):
    device_id: str
    account_id: int
    scans_moved: int
    total_points: int


Handler = Callable[[DomainEvent], None]


class EventBus:
    """Synchronous publish/subscribe registry keyed by event type."""

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[Handler]] = {}

    def subscribe(self, event_type: Type[DomainEvent], handler: Handler) -> None:
        handlers = self._handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_type: Type[DomainEvent], handler: Handler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: DomainEvent) -> None:
        for event_type, handlers in list(self._handlers.items()):
            if not isinstance(event, event_type):
                continue
            for handler in list(handlers):
                try:
                    handler(event)
                except Exception:
                    logger.exception(
                        "Event handler %r failed for %s", handler, event.name
                    )

    def publish_all(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            self.publish(event)

    def clear(self) -> None:
        self._handlers.clear()


def audit_log_handler(event: DomainEvent) -> None:
    """Default subscriber: one audit line per domain event."""
    audit_logger.info(
        "%s %s", event.name, event.payload(), extra={"event": event.name}
    )


def install_default_subscribers(bus: Optional[EventBus] = None) -> EventBus:
    bus = bus or event_bus
    bus.subscribe(DomainEvent, audit_log_handler)
    return bus


event_bus = install_default_subscribers(EventBus())

__all__ = [
    "DomainEvent",
    "EventBus",
    "GuestMigrated",
    "LevelUp",
    "ListingPublished",
    "ListingRejected",
    "ListingSold",
    "ScanApproved",
    "ScanRecorded",
    "ScanRejected",
    "audit_log_handler",
    "event_bus",
    "install_default_subscribers",
]
