"""SQLAlchemy model for accounts and their point balances."""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from ecoscan.models.base import Base
from ecoscan.models.types import utcnow


class Account(Base):
    """A registered user or a device-keyed guest.

    Balance columns (`total_points`, `level`, `pending_points`...) are written only by
    `PointsLedger` through conditional UPDATE statements.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("total_points >= 0", name="ck_accounts_total_points_nonneg"),
        CheckConstraint(
            "pending_points >= 0", name="ck_accounts_pending_points_nonneg"
        ),
    )

    id = Column(Integer, primary_key=True)
    email = Column(String, unique=True, nullable=True)
    username = Column(String, nullable=True)
    hashed_password = Column(String, nullable=True)
    device_id = Column(String, unique=True, nullable=True, index=True)
    is_guest = Column(Boolean, nullable=False, default=False)
    is_admin = Column(Boolean, nullable=False, default=False)

    total_points = Column(Integer, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)
    streak = Column(Integer, nullable=False, default=0)
    items_recycled = Column(Integer, nullable=False, default=0)
    pending_points = Column(Integer, nullable=False, default=0)
    last_scan_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    scans = relationship(
        "ScanRecord", back_populates="account", foreign_keys="ScanRecord.account_id"
    )
    listings = relationship(
        "Listing", back_populates="seller", foreign_keys="Listing.seller_id"
    )

    @property
    def display_name(self) -> str:
        if self.username:
            return self.username
        if self.email:
            return self.email.split("@", 1)[0]
        return "Guest"


__all__ = ["Account"]
