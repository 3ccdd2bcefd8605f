"""Pydantic schemas for listings and orders."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ecoscan.modules.gateways.contracts import ComplianceAction
from ecoscan.modules.marketplace.models import (
    ItemCondition,
    ListingStatus,
    OrderStatus,
    PickupMethod,
)
from ecoscan.modules.scans.models import ItemCategory


class ListingCreate(BaseModel):
    title: str = Field(min_length=1, max_length=120)
    description: Optional[str] = Field(default=None, max_length=2000)
    category: ItemCategory
    price_points: int = Field(gt=0)
    condition: ItemCondition = ItemCondition.GOOD
    pickup_method: PickupMethod = PickupMethod.MEETUP
    image_url: Optional[str] = None


class ListingUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = Field(default=None, max_length=2000)
    price_points: Optional[int] = Field(default=None, gt=0)
    condition: Optional[ItemCondition] = None
    pickup_method: Optional[PickupMethod] = None


class SellerOut(BaseModel):
    id: int
    display_name: str

    model_config = ConfigDict(from_attributes=True)


class ListingOut(BaseModel):
    id: int
    seller_id: int
    scan_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    category: ItemCategory
    price_points: int
    status: ListingStatus
    condition: ItemCondition
    pickup_method: PickupMethod
    image_url: Optional[str] = None
    risk_score: Optional[int] = None
    violations: List[str] = []
    moderation_note: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    seller: Optional[SellerOut] = None

    model_config = ConfigDict(from_attributes=True)


class SubmissionOut(BaseModel):
    listing: ListingOut
    risk_score: int
    action: ComplianceAction
    violations: List[str] = []


class OrderOut(BaseModel):
    id: int
    listing_id: int
    buyer_id: int
    seller_id: int
    price_points: int
    status: OrderStatus
    created_at: datetime
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReviewDecision(BaseModel):
    note: Optional[str] = Field(default=None, max_length=500)


__all__ = [
    "ListingCreate",
    "ListingOut",
    "ListingUpdate",
    "OrderOut",
    "ReviewDecision",
    "SellerOut",
    "SubmissionOut",
]
