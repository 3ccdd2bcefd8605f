"""Seeding draft listings from traded scans."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ecoscan.modules.marketplace.models import Listing, ListingStatus
from ecoscan.modules.scans.models import ItemCategory, ScanRecord

logger = logging.getLogger(__name__)

TRADE_PRICE_FACTOR = 2


def draft_description(scan: ScanRecord) -> str:
    if scan.ai_suggestion:
        return scan.ai_suggestion
    return f"A {ItemCategory(scan.category).value} item in good condition."


def ensure_trade_draft(db: Session, scan: ScanRecord) -> Listing:
    """Return the scan's listing, creating a draft if none exists yet.

    Runs inside the caller's transaction; the unique ``scan_id`` column keeps a scan
    from ever spawning a second listing.
    """
    existing = db.execute(
        select(Listing).where(Listing.scan_id == scan.id)
    ).scalar_one_or_none()
    if existing is not None:
        return existing

    listing = Listing(
        seller_id=scan.account_id,
        scan_id=scan.id,
        title=scan.name,
        description=draft_description(scan),
        category=scan.category,
        price_points=max(scan.final_points * TRADE_PRICE_FACTOR, 1),
        status=ListingStatus.DRAFT,
        image_url=scan.image_url,
    )
    db.add(listing)
    db.flush()
    logger.info("Created trade draft %s from scan %s", listing.id, scan.id)
    return listing


__all__ = ["TRADE_PRICE_FACTOR", "draft_description", "ensure_trade_draft"]
