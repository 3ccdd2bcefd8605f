"""Listing lifecycle: draft -> pending_review -> active -> sold, or cancelled.

Listings created directly on the marketplace go live at once. Drafts seeded from traded
scans must pass the compliance gate on submission. Both paths are kept on purpose.
Status changes are conditional UPDATEs on the expected current status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy import select, update

from ecoscan.core.database.query_helpers import paginate_query, with_joined_loads
from ecoscan.core.database.transactions import TransactionalService
from ecoscan.core.events import EventBus, ListingPublished
from ecoscan.core.exceptions import (
    ComplianceRejected,
    PermissionDeniedException,
    ResourceNotFoundException,
    StaleTransition,
)
from ecoscan.modules.accounts.actor import ActorContext
from ecoscan.modules.gateways.contracts import (
    ComplianceAction,
    ComplianceGateway,
    ComplianceVerdict,
)
from ecoscan.modules.marketplace.models import (
    OPEN_LISTING_STATUSES,
    Listing,
    ListingStatus,
)
from ecoscan.modules.marketplace.schemas import ListingCreate, ListingUpdate

logger = logging.getLogger(__name__)

OWN_LISTING_STATUSES = (
    ListingStatus.DRAFT,
    ListingStatus.PENDING_REVIEW,
    ListingStatus.ACTIVE,
    ListingStatus.SOLD,
)

_SUBMISSION_TARGETS = {
    ComplianceAction.AUTO_APPROVE: ListingStatus.ACTIVE,
    ComplianceAction.NEEDS_REVIEW: ListingStatus.PENDING_REVIEW,
}


@dataclass(frozen=True)
class SubmissionResult:
    listing: Listing
    verdict: ComplianceVerdict


class ListingLifecycle(TransactionalService):
    def __init__(
        self,
        db,
        *,
        compliance: Optional[ComplianceGateway] = None,
        bus: Optional[EventBus] = None,
    ):
        super().__init__(db, bus=bus)
        self.compliance = compliance

    def create_listing(self, actor: ActorContext, payload: ListingCreate) -> Listing:
        """Publish a listing straight to the marketplace, without the compliance gate."""
        actor.require_member()
        listing = Listing(
            seller_id=actor.account_id,
            title=payload.title.strip(),
            description=payload.description,
            category=payload.category,
            price_points=payload.price_points,
            condition=payload.condition,
            pickup_method=payload.pickup_method,
            image_url=payload.image_url,
            status=ListingStatus.ACTIVE,
        )
        with self.transaction():
            self.db.add(listing)
            self.db.flush()
            self.emit(ListingPublished(listing_id=listing.id, seller_id=actor.account_id))
        logger.info("Listing %s published by %s", listing.id, actor.account_id)
        return listing

    def update_listing(
        self, actor: ActorContext, listing_id: int, payload: ListingUpdate
    ) -> Listing:
        actor.require_member()
        listing = self._owned(actor, listing_id)
        values = payload.model_dump(exclude_unset=True, exclude_none=True)
        if "title" in values:
            values["title"] = values["title"].strip()
        if not values:
            return listing

        with self.transaction():
            self._transition(
                listing,
                expected=OPEN_LISTING_STATUSES,
                values=values,
                message="Sold or cancelled listings can no longer be edited",
            )
        logger.info("Listing %s updated (%s)", listing_id, ", ".join(sorted(values)))
        return listing

    def submit(self, actor: ActorContext, listing_id: int) -> SubmissionResult:
        """Run the compliance gate on a draft and move it forward accordingly."""
        actor.require_member()
        listing = self._owned(actor, listing_id)
        if listing.status != ListingStatus.DRAFT:
            raise StaleTransition(
                "Listing",
                listing_id,
                current_status=listing.status.value,
                message="Only drafts can be submitted",
            )
        if self.compliance is None:
            raise RuntimeError("ListingLifecycle.submit requires a compliance gateway")

        verdict = self.compliance.check(
            listing.title,
            listing.description,
            listing.category.value,
            listing.image_url,
        )
        values = {"risk_score": verdict.risk_score, "violations": list(verdict.violations)}
        target = _SUBMISSION_TARGETS.get(verdict.action)
        if target is not None:
            values["status"] = target

        with self.transaction():
            self._transition(listing, expected=(ListingStatus.DRAFT,), values=values)
            if target == ListingStatus.ACTIVE:
                self.emit(ListingPublished(listing_id=listing.id, seller_id=listing.seller_id))

        logger.info(
            "Listing %s compliance %s (risk=%s, source=%s)",
            listing_id,
            verdict.action.value,
            verdict.risk_score,
            verdict.source,
        )
        if target is None:
            raise ComplianceRejected(verdict.risk_score, list(verdict.violations))
        return SubmissionResult(listing=listing, verdict=verdict)

    def cancel(self, actor: ActorContext, listing_id: int) -> Listing:
        """Seller withdrawal; irreversible."""
        actor.require_member()
        listing = self._owned(actor, listing_id)
        with self.transaction():
            self._transition(
                listing,
                expected=OPEN_LISTING_STATUSES,
                values={"status": ListingStatus.CANCELLED},
                message="This listing can no longer be cancelled",
            )
        logger.info("Listing %s cancelled by %s", listing_id, actor.account_id)
        return listing

    def browse(
        self,
        *,
        skip: int = 0,
        limit: int = 50,
        category: Optional[str] = None,
    ) -> List[Listing]:
        query = self.db.query(Listing).filter(Listing.status == ListingStatus.ACTIVE)
        if category:
            query = query.filter(Listing.category == category)
        query = with_joined_loads(query, Listing.seller).order_by(
            Listing.created_at.desc(), Listing.id.desc()
        )
        return paginate_query(query, skip, limit).all()

    def mine(self, actor: ActorContext) -> List[Listing]:
        actor.require_member()
        return (
            self.db.query(Listing)
            .filter(
                Listing.seller_id == actor.account_id,
                Listing.status.in_(OWN_LISTING_STATUSES),
            )
            .order_by(Listing.created_at.desc(), Listing.id.desc())
            .all()
        )

    def get_listing(self, actor: Optional[ActorContext], listing_id: int) -> Listing:
        """Active listings are public; anything else only to its seller and admins."""
        listing = self.db.get(Listing, listing_id)
        if listing is None:
            raise ResourceNotFoundException("Listing", listing_id)
        if listing.status != ListingStatus.ACTIVE:
            allowed = actor is not None and (
                actor.is_admin or actor.account_id == listing.seller_id
            )
            if not allowed:
                raise ResourceNotFoundException("Listing", listing_id)
        return listing

    def _owned(self, actor: ActorContext, listing_id: int) -> Listing:
        listing = self.db.get(Listing, listing_id)
        if listing is None:
            raise ResourceNotFoundException("Listing", listing_id)
        if listing.seller_id != actor.account_id:
            raise PermissionDeniedException("Only the seller can change this listing")
        return listing

    def _transition(
        self,
        listing: Listing,
        *,
        expected: Iterable[ListingStatus],
        values: dict,
        message: Optional[str] = None,
    ) -> None:
        listing_id = listing.id
        result = self.db.execute(
            update(Listing)
            .where(Listing.id == listing_id, Listing.status.in_(tuple(expected)))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.expire(listing)
        if result.rowcount != 1:
            current = self.db.execute(
                select(Listing.status).where(Listing.id == listing_id)
            ).scalar_one_or_none()
            raise StaleTransition(
                "Listing",
                listing_id,
                current_status=current.value if current is not None else None,
                message=message,
            )


__all__ = [
    "ListingLifecycle",
    "OWN_LISTING_STATUSES",
    "SubmissionResult",
]
