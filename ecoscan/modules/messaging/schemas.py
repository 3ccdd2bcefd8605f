"""Pydantic schemas for listing conversations."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageCreate(BaseModel):
    listing_id: int
    receiver_id: int
    content: str = Field(min_length=1, max_length=2000)


class MessageOut(BaseModel):
    id: int
    listing_id: int
    sender_id: int
    receiver_id: int
    content: str
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConversationOut(BaseModel):
    listing_id: int
    listing_title: Optional[str] = None
    counterpart_id: int
    counterpart_name: Optional[str] = None
    last_message: str
    last_message_at: datetime
    unread_count: int


class MarkReadOut(BaseModel):
    updated: int


__all__ = ["ConversationOut", "MarkReadOut", "MessageCreate", "MessageOut"]
