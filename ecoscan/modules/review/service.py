"""Admin review queue over pending scans and listings awaiting compliance review.

Every decision is a conditional UPDATE on the record's current status. A decision that no
longer matches (double click, second admin, replayed event) changes nothing and reports
``changed=False`` instead of failing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generic, List, Optional, TypeVar

from sqlalchemy import select, update

from ecoscan.core.database.query_helpers import paginate_query
from ecoscan.core.database.transactions import TransactionalService
from ecoscan.core.events import (
    ListingPublished,
    ListingRejected,
    ScanApproved,
    ScanRejected,
)
from ecoscan.core.exceptions import ResourceNotFoundException
from ecoscan.modules.accounts.actor import ActorContext
from ecoscan.modules.accounts.ledger import PointsLedger
from ecoscan.modules.accounts.models import Account
from ecoscan.modules.marketplace.drafts import ensure_trade_draft
from ecoscan.modules.marketplace.models import Listing, ListingStatus
from ecoscan.modules.notifications.models import NotificationKind
from ecoscan.modules.notifications.service import NotificationService
from ecoscan.modules.scans.models import DisposalChoice, ScanRecord, ScanStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ReviewOutcome(Generic[T]):
    changed: bool
    record: T


class ReviewQueue(TransactionalService):
    @property
    def notifications(self) -> NotificationService:
        return NotificationService(self.db, bus=self.bus)

    # ==================== Scans ====================

    def pending_scans(
        self, actor: ActorContext, *, skip: int = 0, limit: int = 50
    ) -> List[ScanRecord]:
        actor.require_admin()
        query = (
            self.db.query(ScanRecord)
            .filter(
                ScanRecord.status == ScanStatus.PENDING,
                ScanRecord.disposal_choice.isnot(None),
            )
            .order_by(ScanRecord.scanned_at.asc(), ScanRecord.id.asc())
        )
        return paginate_query(query, skip, limit).all()

    def approve_scan(self, actor: ActorContext, scan_id: int) -> ReviewOutcome[ScanRecord]:
        actor.require_admin()
        scan = self._scan(scan_id)
        with self.transaction():
            if not self._decide_scan(scan, ScanStatus.APPROVED, actor):
                return self._unchanged(scan, "approve")
            owner_id = scan.account_id
            points = scan.final_points
            ledger = PointsLedger(self.db, bus=self.bus)
            ledger.adjust_pending(owner_id, -points)
            ledger.credit(owner_id, points, items_recycled=1)
            if scan.disposal_choice == DisposalChoice.TRADE and not self._is_guest(owner_id):
                ensure_trade_draft(self.db, scan)
            self.notifications.push(
                owner_id,
                "Scan Approved!",
                f'Your "{scan.name}" scan was approved. You earned {points} points!',
                NotificationKind.REWARD,
                created_by=actor.account_id,
            )
            self.emit(ScanApproved(scan_id=scan_id, account_id=owner_id, final_points=points))
        logger.info("Scan %s approved by %s", scan_id, actor.account_id)
        return ReviewOutcome(changed=True, record=scan)

    def reject_scan(self, actor: ActorContext, scan_id: int) -> ReviewOutcome[ScanRecord]:
        actor.require_admin()
        scan = self._scan(scan_id)
        with self.transaction():
            if not self._decide_scan(scan, ScanStatus.REJECTED, actor):
                return self._unchanged(scan, "reject")
            owner_id = scan.account_id
            PointsLedger(self.db, bus=self.bus).adjust_pending(owner_id, -scan.final_points)
            self.notifications.push(
                owner_id,
                "Scan Rejected",
                f'Your "{scan.name}" scan was not approved. '
                "Please try again with a clearer image.",
                NotificationKind.ALERT,
                created_by=actor.account_id,
            )
            self.emit(ScanRejected(scan_id=scan_id, account_id=owner_id))
        logger.info("Scan %s rejected by %s", scan_id, actor.account_id)
        return ReviewOutcome(changed=True, record=scan)

    # ==================== Listings ====================

    def pending_listings(self, actor: ActorContext) -> List[Listing]:
        actor.require_admin()
        return (
            self.db.query(Listing)
            .filter(Listing.status == ListingStatus.PENDING_REVIEW)
            .order_by(Listing.created_at.asc(), Listing.id.asc())
            .all()
        )

    def approve_listing(
        self, actor: ActorContext, listing_id: int, note: Optional[str] = None
    ) -> ReviewOutcome[Listing]:
        actor.require_admin()
        listing = self._listing(listing_id)
        with self.transaction():
            if not self._decide_listing(listing, ListingStatus.ACTIVE, actor, note):
                return self._unchanged(listing, "approve")
            self.notifications.push(
                listing.seller_id,
                "Listing Approved!",
                f'Your listing "{listing.title}" is now live on the marketplace.',
                NotificationKind.UPDATE,
                created_by=actor.account_id,
            )
            self.emit(ListingPublished(listing_id=listing_id, seller_id=listing.seller_id))
        logger.info("Listing %s approved by %s", listing_id, actor.account_id)
        return ReviewOutcome(changed=True, record=listing)

    def reject_listing(
        self, actor: ActorContext, listing_id: int, note: Optional[str] = None
    ) -> ReviewOutcome[Listing]:
        actor.require_admin()
        listing = self._listing(listing_id)
        with self.transaction():
            if not self._decide_listing(listing, ListingStatus.CANCELLED, actor, note):
                return self._unchanged(listing, "reject")
            self.notifications.push(
                listing.seller_id,
                "Listing Rejected",
                f'Your listing "{listing.title}" was not approved. '
                "Please review our guidelines and try again.",
                NotificationKind.ALERT,
                created_by=actor.account_id,
            )
            self.emit(ListingRejected(listing_id=listing_id, seller_id=listing.seller_id))
        logger.info("Listing %s rejected by %s", listing_id, actor.account_id)
        return ReviewOutcome(changed=True, record=listing)

    # ==================== Helpers ====================

    def _decide_scan(
        self, scan: ScanRecord, status: ScanStatus, actor: ActorContext
    ) -> bool:
        result = self.db.execute(
            update(ScanRecord)
            .where(
                ScanRecord.id == scan.id,
                ScanRecord.status == ScanStatus.PENDING,
                ScanRecord.disposal_choice.isnot(None),
            )
            .values(
                status=status,
                reviewed_by=actor.account_id,
                reviewed_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.expire(scan)
        return result.rowcount == 1

    def _decide_listing(
        self,
        listing: Listing,
        status: ListingStatus,
        actor: ActorContext,
        note: Optional[str],
    ) -> bool:
        result = self.db.execute(
            update(Listing)
            .where(
                Listing.id == listing.id,
                Listing.status == ListingStatus.PENDING_REVIEW,
            )
            .values(
                status=status,
                reviewed_by=actor.account_id,
                reviewed_at=datetime.now(timezone.utc),
                moderation_note=note,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.expire(listing)
        return result.rowcount == 1

    def _unchanged(self, record: T, action: str) -> ReviewOutcome[T]:
        logger.info(
            "Ignored %s on %s %s (status=%s)",
            action,
            type(record).__name__,
            record.id,
            record.status.value,
        )
        return ReviewOutcome(changed=False, record=record)

    def _is_guest(self, account_id: int) -> bool:
        return bool(
            self.db.execute(
                select(Account.is_guest).where(Account.id == account_id)
            ).scalar_one_or_none()
        )

    def _scan(self, scan_id: int) -> ScanRecord:
        scan = self.db.get(ScanRecord, scan_id)
        if scan is None:
            raise ResourceNotFoundException("Scan", scan_id)
        return scan

    def _listing(self, listing_id: int) -> Listing:
        listing = self.db.get(Listing, listing_id)
        if listing is None:
            raise ResourceNotFoundException("Listing", listing_id)
        return listing


__all__ = ["ReviewOutcome", "ReviewQueue"]
