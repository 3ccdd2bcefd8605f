"""SQLAlchemy model for persisted in-app notifications."""

from __future__ import annotations

import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from ecoscan.models.base import Base
from ecoscan.models.types import enum_type, utcnow


class NotificationKind(str, enum.Enum):
    ANNOUNCEMENT = "announcement"
    UPDATE = "update"
    ALERT = "alert"
    REWARD = "reward"


class Notification(Base):
    """A message for one account, or for everyone when `target_account_id` is null."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    target_account_id = Column(
        Integer,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    kind = Column(
        enum_type(NotificationKind, "notification_kind_enum"),
        nullable=False,
        default=NotificationKind.ANNOUNCEMENT,
    )
    created_by = Column(
        Integer, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


__all__ = ["Notification", "NotificationKind"]
