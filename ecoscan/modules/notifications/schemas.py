"""Pydantic schemas for notifications."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ecoscan.modules.notifications.models import NotificationKind


class NotificationCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)
    kind: NotificationKind = NotificationKind.ANNOUNCEMENT
    target_account_id: Optional[int] = None


class NotificationOut(BaseModel):
    id: int
    target_account_id: Optional[int] = None
    title: str
    message: str
    kind: NotificationKind
    created_by: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


__all__ = ["NotificationCreate", "NotificationOut"]
