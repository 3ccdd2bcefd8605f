"""SQLAlchemy models and enums for scanned items."""

from __future__ import annotations

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ecoscan.models.base import Base
from ecoscan.models.types import enum_type, json_type, utcnow


class ItemCategory(str, enum.Enum):
    CLOTHING = "clothing"
    ELECTRONICS = "electronics"
    COMPOST = "compost"
    RECYCLABLE = "recyclable"
    HAZARDOUS = "hazardous"
    OTHER = "other"


class DisposalChoice(str, enum.Enum):
    DONATE = "donate"
    TRADE = "trade"
    RECYCLE = "recycle"
    DISCARD = "discard"
    SPECIAL = "special"


class ScanStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ScanRecord(Base):
    """One classified item owned by the account that scanned it."""

    __tablename__ = "scan_records"
    __table_args__ = (
        CheckConstraint("base_points >= 0", name="ck_scan_records_base_points"),
        CheckConstraint("final_points >= 0", name="ck_scan_records_final_points"),
    )

    id = Column(Integer, primary_key=True)
    account_id = Column(
        Integer,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String, nullable=False)
    category = Column(enum_type(ItemCategory, "item_category_enum"), nullable=False)
    base_points = Column(Integer, nullable=False)
    disposal_choice = Column(
        enum_type(DisposalChoice, "disposal_choice_enum"), nullable=True
    )
    final_points = Column(Integer, nullable=False)
    status = Column(
        enum_type(ScanStatus, "scan_status_enum"),
        nullable=False,
        default=ScanStatus.PENDING,
        index=True,
    )
    confidence = Column(Float, nullable=True)
    image_url = Column(String, nullable=True)
    ai_suggestion = Column(Text, nullable=True)
    flags = Column(json_type(), nullable=False, default=dict)

    scanned_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(
        Integer, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )

    account = relationship("Account", back_populates="scans", foreign_keys=[account_id])
    listing = relationship("Listing", back_populates="scan", uselist=False)


__all__ = ["DisposalChoice", "ItemCategory", "ScanRecord", "ScanStatus"]
