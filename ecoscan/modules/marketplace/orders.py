"""Marketplace purchases.

A purchase is one database transaction: claim the listing (``active -> sold`` guarded on
the current status), insert the order, debit the buyer, credit the seller, notify the
seller, open the conversation and complete the order. Any failure rolls everything back,
so the listing never ends up sold without a completed order and points never move on one
side only. Of two buyers racing for the same listing, the loser matches no row on the
claim and gets ListingUnavailable.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError

from ecoscan.core.database.query_helpers import paginate_query
from ecoscan.core.database.transactions import TransactionalService
from ecoscan.core.events import ListingSold
from ecoscan.core.exceptions import (
    InsufficientFunds,
    ListingUnavailable,
    NotOwnListing,
    ResourceNotFoundException,
)
from ecoscan.modules.accounts.actor import ActorContext
from ecoscan.modules.accounts.ledger import PointsLedger
from ecoscan.modules.accounts.models import Account
from ecoscan.modules.marketplace.models import (
    Listing,
    ListingStatus,
    Order,
    OrderStatus,
)
from ecoscan.modules.messaging.service import MessagingService
from ecoscan.modules.notifications.models import NotificationKind
from ecoscan.modules.notifications.service import NotificationService

logger = logging.getLogger(__name__)


class OrderCoordinator(TransactionalService):
    def purchase(self, actor: ActorContext, listing_id: int) -> Order:
        actor.require_member()
        listing = self.db.get(Listing, listing_id)
        if listing is None:
            raise ResourceNotFoundException("Listing", listing_id)
        if listing.seller_id == actor.account_id:
            raise NotOwnListing(listing_id)
        if listing.status != ListingStatus.ACTIVE:
            raise ListingUnavailable(listing_id, listing.status.value)

        ledger = PointsLedger(self.db, bus=self.bus)
        available = ledger.balance(actor.account_id).total_points
        if available < listing.price_points:
            raise InsufficientFunds(required=listing.price_points, available=available)

        seller_id = listing.seller_id
        try:
            with self.transaction():
                claimed = self.db.execute(
                    update(Listing)
                    .where(
                        Listing.id == listing_id,
                        Listing.status == ListingStatus.ACTIVE,
                    )
                    .values(status=ListingStatus.SOLD)
                    .execution_options(synchronize_session=False)
                )
                self.db.expire(listing)
                if claimed.rowcount != 1:
                    raise ListingUnavailable(listing_id)

                # Re-read under the claim so the order snapshots the price actually sold.
                title, price = self.db.execute(
                    select(Listing.title, Listing.price_points).where(
                        Listing.id == listing_id
                    )
                ).one()

                order = Order(
                    listing_id=listing_id,
                    buyer_id=actor.account_id,
                    seller_id=seller_id,
                    price_points=price,
                    status=OrderStatus.PENDING,
                )
                self.db.add(order)
                self.db.flush()

                ledger.debit(actor.account_id, price)
                ledger.credit(seller_id, price)

                buyer = self.db.get(Account, actor.account_id)
                buyer_name = buyer.display_name if buyer else "Someone"
                NotificationService(self.db, bus=self.bus).push(
                    seller_id,
                    "Your item sold!",
                    f'{buyer_name} purchased "{title}" for {price} points. '
                    "Check your messages to coordinate pickup!",
                    NotificationKind.REWARD,
                )
                MessagingService(self.db, bus=self.bus).post(
                    listing_id,
                    actor.account_id,
                    seller_id,
                    f'Hi! I just purchased "{title}". Let\'s arrange the pickup!',
                )

                order.status = OrderStatus.COMPLETED
                order.completed_at = datetime.now(timezone.utc)
                self.db.flush()
                self.emit(
                    ListingSold(
                        listing_id=listing_id,
                        order_id=order.id,
                        buyer_id=actor.account_id,
                        seller_id=seller_id,
                        price_points=price,
                    )
                )
        except IntegrityError:
            logger.warning("Order conflict on listing %s", listing_id)
            raise ListingUnavailable(listing_id) from None

        logger.info(
            "Order %s: account %s bought listing %s from %s for %s points",
            order.id,
            actor.account_id,
            listing_id,
            seller_id,
            price,
        )
        return order

    def list_orders(
        self, actor: ActorContext, *, skip: int = 0, limit: int = 50
    ) -> List[Order]:
        actor.require_member()
        query = (
            self.db.query(Order)
            .filter(
                or_(
                    Order.buyer_id == actor.account_id,
                    Order.seller_id == actor.account_id,
                )
            )
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return paginate_query(query, skip, limit).all()


__all__ = ["OrderCoordinator"]
