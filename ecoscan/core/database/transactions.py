"""Transaction helpers shared by the domain services.

A service method wraps its writes in ``with self.transaction():``. The outermost block
commits once at the end, rolls back on any exception, and only then hands the domain
events collected along the way to the event bus. Nesting state lives in ``Session.info``
so every service bound to the same session joins the same transaction; the ledger can be
driven by the scan lifecycle without committing half of a scan.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Type

from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from ecoscan.core.events import DomainEvent, EventBus, event_bus

logger = logging.getLogger(__name__)

_STATE_KEY = "ecoscan.transaction"


@dataclass
class _TransactionState:
    depth: int = 0
    events: List[DomainEvent] = field(default_factory=list)


class TransactionalService:
    """Base for services that own one database transaction per public operation."""

    def __init__(self, db: Session, *, bus: Optional[EventBus] = None):
        self.db = db
        self.bus = bus or event_bus

    @property
    def _state(self) -> _TransactionState:
        return self.db.info.setdefault(_STATE_KEY, _TransactionState())

    def emit(self, event: DomainEvent) -> None:
        self._state.events.append(event)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Commit on success, roll back on error, publish events after commit.

        Re-entrant: only the outermost block commits or rolls back.
        """
        state = self._state
        state.depth += 1
        outermost = state.depth == 1
        try:
            yield self.db
            if outermost:
                self.db.commit()
        except Exception:
            if outermost:
                self.db.rollback()
                state.events.clear()
            raise
        finally:
            state.depth -= 1

        if outermost and state.events:
            events, state.events = state.events, []
            self.bus.publish_all(events)

    def expire_cached(self, model: Type, pk) -> None:
        """Drop stale attribute state after a bulk UPDATE on one row."""
        obj = self.db.identity_map.get(identity_key(model, pk))
        if obj is not None:
            self.db.expire(obj)


__all__ = ["TransactionalService"]
