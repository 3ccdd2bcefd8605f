"""Pydantic schemas for scans and disposal choices."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, computed_field

from ecoscan.modules.scans import policy
from ecoscan.modules.scans.models import DisposalChoice, ItemCategory, ScanStatus


class DisposalOption(BaseModel):
    choice: DisposalChoice
    multiplier: float
    points: int


class ScanOut(BaseModel):
    id: int
    account_id: int
    name: str
    category: ItemCategory
    base_points: int
    disposal_choice: Optional[DisposalChoice] = None
    final_points: int
    status: ScanStatus
    confidence: Optional[float] = None
    image_url: Optional[str] = None
    ai_suggestion: Optional[str] = None
    flags: dict = {}
    scanned_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def needs_choice(self) -> bool:
        return (
            self.status == ScanStatus.PENDING
            and self.disposal_choice is None
            and policy.needs_choice(self.category)
        )

    @computed_field
    @property
    def options(self) -> List[DisposalOption]:
        return [
            DisposalOption(
                choice=choice,
                multiplier=float(policy.multiplier(self.category, choice)),
                points=policy.final_points(self.base_points, self.category, choice),
            )
            for choice in policy.allowed_choices(self.category)
        ]


class RetryOut(BaseModel):
    retry: bool = True
    reason: str


class DisposalRequest(BaseModel):
    # Plain string so an unknown choice surfaces as InvalidDisposalChoice.
    choice: str


__all__ = ["DisposalOption", "DisposalRequest", "RetryOut", "ScanOut"]
