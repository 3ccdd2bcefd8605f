"""Pydantic schemas for the admin review queue."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from ecoscan.modules.marketplace.schemas import ListingOut
from ecoscan.modules.scans.schemas import ScanOut


class PendingScanOut(ScanOut):
    username: Optional[str] = None


class ScanReviewOut(BaseModel):
    changed: bool
    scan: ScanOut


class ListingReviewOut(BaseModel):
    changed: bool
    listing: ListingOut


__all__ = ["ListingReviewOut", "PendingScanOut", "ScanReviewOut"]
