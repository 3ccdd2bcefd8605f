"""SQLAlchemy model for listing conversations."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import relationship

from ecoscan.models.base import Base
from ecoscan.models.types import utcnow


class Message(Base):
    """One message between two participants about a listing."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_thread", "listing_id", "sender_id", "receiver_id"),
    )

    id = Column(Integer, primary_key=True)
    listing_id = Column(
        Integer, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False
    )
    sender_id = Column(
        Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    receiver_id = Column(
        Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    listing = relationship("Listing")
    sender = relationship("Account", foreign_keys=[sender_id])


__all__ = ["Message"]
