"""Scan lifecycle: from a classification result to an approved or rejected record.

Records that need a disposal choice start as ``pending`` and add their points to the
account's pending total. ``discard`` approves immediately; every other choice waits for a
reviewer. Each transition is a guarded UPDATE on the record's current status, so a choice
can only ever be applied once.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import List, Optional, Union

from sqlalchemy import select, update

from ecoscan.core.database.query_helpers import paginate_query
from ecoscan.core.database.transactions import TransactionalService
from ecoscan.core.events import ScanApproved, ScanRecorded
from ecoscan.core.exceptions import (
    ResourceNotFoundException,
    StaleTransition,
)
from ecoscan.modules.accounts.actor import ActorContext
from ecoscan.modules.accounts.ledger import PointsLedger
from ecoscan.modules.gateways.contracts import (
    ClassificationOutcome,
    ClassificationResult,
    Retry,
)
from ecoscan.modules.marketplace.drafts import ensure_trade_draft
from ecoscan.modules.scans import policy
from ecoscan.modules.scans.models import (
    DisposalChoice,
    ItemCategory,
    ScanRecord,
    ScanStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20


class ScanLifecycle(TransactionalService):
    """Creates scan records and resolves disposal choices."""

    @property
    def ledger(self) -> PointsLedger:
        return PointsLedger(self.db, bus=self.bus)

    def record_scan(
        self,
        actor: ActorContext,
        outcome: ClassificationOutcome,
        *,
        image_url: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Union[ScanRecord, Retry]:
        """Persist a classified item, or pass a Retry straight back without storing anything."""
        if isinstance(outcome, Retry):
            logger.info(
                "Scan for account %s not identified (%s)", actor.account_id, outcome.reason
            )
            return outcome
        if not isinstance(outcome, ClassificationResult):
            raise TypeError(f"Unsupported classification outcome: {outcome!r}")

        category = ItemCategory(outcome.category)
        approve_now = not policy.needs_choice(category)
        record = ScanRecord(
            account_id=actor.account_id,
            name=outcome.name,
            category=category,
            base_points=outcome.points,
            final_points=outcome.points,
            status=ScanStatus.APPROVED if approve_now else ScanStatus.PENDING,
            confidence=outcome.confidence,
            image_url=image_url,
            ai_suggestion=outcome.suggestion
            or policy.default_suggestion(category, outcome.can_trade),
            flags=outcome.flags,
        )
        if approve_now:
            record.reviewed_at = datetime.now(timezone.utc)

        ledger = self.ledger
        with self.transaction():
            self.db.add(record)
            self.db.flush()
            if approve_now:
                ledger.credit(actor.account_id, record.final_points, items_recycled=1)
            else:
                ledger.adjust_pending(actor.account_id, record.final_points)
            ledger.record_activity(actor.account_id, today or date.today())
            self.emit(
                ScanRecorded(
                    scan_id=record.id,
                    account_id=actor.account_id,
                    category=category.value,
                    status=record.status.value,
                    final_points=record.final_points,
                )
            )
            if approve_now:
                self.emit(
                    ScanApproved(
                        scan_id=record.id,
                        account_id=actor.account_id,
                        final_points=record.final_points,
                    )
                )

        logger.info(
            "Recorded scan %s (%s, %s pts, %s) for account %s",
            record.id,
            category.value,
            record.final_points,
            record.status.value,
            actor.account_id,
        )
        return record

    def apply_disposal_choice(
        self, actor: ActorContext, scan_id: int, choice: Union[DisposalChoice, str]
    ) -> ScanRecord:
        record = self.db.get(ScanRecord, scan_id)
        if record is None or record.account_id != actor.account_id:
            raise ResourceNotFoundException("Scan", scan_id)
        category = ItemCategory(record.category)
        base_points = record.base_points
        # Raises InvalidDisposalChoice for choices the category does not offer,
        # which includes discard for hazardous items.
        policy.multiplier(category, choice)
        points = policy.final_points(base_points, category, choice)
        choice = DisposalChoice(choice)

        is_discard = choice == DisposalChoice.DISCARD
        values = {"disposal_choice": choice, "final_points": points}
        if is_discard:
            values.update(
                status=ScanStatus.APPROVED, reviewed_at=datetime.now(timezone.utc)
            )

        ledger = self.ledger
        with self.transaction():
            result = self.db.execute(
                update(ScanRecord)
                .where(
                    ScanRecord.id == scan_id,
                    ScanRecord.status == ScanStatus.PENDING,
                    ScanRecord.disposal_choice.is_(None),
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            self.db.expire(record)
            if result.rowcount != 1:
                raise StaleTransition(
                    "Scan",
                    scan_id,
                    current_status=self._status_of(scan_id),
                    message="A disposal choice was already applied to this scan",
                )

            if is_discard:
                ledger.adjust_pending(actor.account_id, -base_points)
                ledger.credit(actor.account_id, points, items_recycled=1)
                self.emit(
                    ScanApproved(
                        scan_id=scan_id, account_id=actor.account_id, final_points=points
                    )
                )
            else:
                ledger.adjust_pending(actor.account_id, points - base_points)
                if choice == DisposalChoice.TRADE and not actor.is_guest:
                    ensure_trade_draft(self.db, record)

        logger.info(
            "Applied %s to scan %s (%s pts) for account %s",
            choice.value,
            scan_id,
            points,
            actor.account_id,
        )
        return record

    def get_scan(self, actor: ActorContext, scan_id: int) -> ScanRecord:
        record = self.db.get(ScanRecord, scan_id)
        if record is None or (
            record.account_id != actor.account_id and not actor.is_admin
        ):
            raise ResourceNotFoundException("Scan", scan_id)
        return record

    def list_scans(
        self, actor: ActorContext, *, skip: int = 0, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> List[ScanRecord]:
        query = (
            self.db.query(ScanRecord)
            .filter(ScanRecord.account_id == actor.account_id)
            .order_by(ScanRecord.scanned_at.desc(), ScanRecord.id.desc())
        )
        return paginate_query(query, skip, limit).all()

    def _status_of(self, scan_id: int) -> Optional[str]:
        status = self.db.execute(
            select(ScanRecord.status).where(ScanRecord.id == scan_id)
        ).scalar_one_or_none()
        return status.value if status is not None else None


__all__ = ["DEFAULT_HISTORY_LIMIT", "ScanLifecycle"]
