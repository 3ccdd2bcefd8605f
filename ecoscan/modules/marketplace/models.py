"""SQLAlchemy models and enums for the points marketplace."""

from __future__ import annotations

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship

from ecoscan.models.base import Base
from ecoscan.models.types import enum_type, json_type, utcnow
from ecoscan.modules.scans.models import ItemCategory


class ListingStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    ACTIVE = "active"
    SOLD = "sold"
    CANCELLED = "cancelled"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ItemCondition(str, enum.Enum):
    NEW = "new"
    LIKE_NEW = "like_new"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class PickupMethod(str, enum.Enum):
    MEETUP = "meetup"
    DELIVERY = "delivery"
    PICKUP_POINT = "pickup_point"


# Statuses in which the seller may still edit or withdraw a listing.
OPEN_LISTING_STATUSES = (
    ListingStatus.DRAFT,
    ListingStatus.PENDING_REVIEW,
    ListingStatus.ACTIVE,
)


class Listing(Base):
    """A points-priced offer, optionally spawned from a traded scan."""

    __tablename__ = "listings"
    __table_args__ = (
        CheckConstraint("price_points > 0", name="ck_listings_price_positive"),
        CheckConstraint(
            "risk_score IS NULL OR (risk_score >= 0 AND risk_score <= 10)",
            name="ck_listings_risk_score_range",
        ),
    )

    id = Column(Integer, primary_key=True)
    seller_id = Column(
        Integer,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    scan_id = Column(
        Integer,
        ForeignKey("scan_records.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(enum_type(ItemCategory, "listing_category_enum"), nullable=False)
    price_points = Column(Integer, nullable=False)
    status = Column(
        enum_type(ListingStatus, "listing_status_enum"),
        nullable=False,
        default=ListingStatus.DRAFT,
        index=True,
    )
    condition = Column(
        enum_type(ItemCondition, "item_condition_enum"),
        nullable=False,
        default=ItemCondition.GOOD,
    )
    pickup_method = Column(
        enum_type(PickupMethod, "pickup_method_enum"),
        nullable=False,
        default=PickupMethod.MEETUP,
    )
    image_url = Column(String, nullable=True)

    risk_score = Column(Integer, nullable=True)
    violations = Column(json_type(), nullable=False, default=list)
    moderation_note = Column(Text, nullable=True)
    reviewed_by = Column(
        Integer, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    seller = relationship("Account", back_populates="listings", foreign_keys=[seller_id])
    scan = relationship("ScanRecord", back_populates="listing")
    orders = relationship("Order", back_populates="listing")


class Order(Base):
    """A purchase of a listing; at most one non-cancelled order per listing."""

    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("buyer_id <> seller_id", name="ck_orders_distinct_parties"),
        CheckConstraint("price_points > 0", name="ck_orders_price_positive"),
        Index(
            "uq_orders_open_listing",
            "listing_id",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    listing_id = Column(
        Integer, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False
    )
    buyer_id = Column(
        Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    seller_id = Column(
        Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    price_points = Column(Integer, nullable=False)
    status = Column(
        enum_type(OrderStatus, "order_status_enum"),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    listing = relationship("Listing", back_populates="orders")
    buyer = relationship("Account", foreign_keys=[buyer_id])
    seller = relationship("Account", foreign_keys=[seller_id])


__all__ = [
    "ItemCondition",
    "Listing",
    "ListingStatus",
    "OPEN_LISTING_STATUSES",
    "Order",
    "OrderStatus",
    "PickupMethod",
]
