"""Admin router: review queues, account roles and announcements."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ecoscan import oauth2
from ecoscan.core.database import get_db
from ecoscan.modules.accounts.actor import ActorContext
from ecoscan.modules.accounts.schemas import AccountOut, AdminRoleUpdate
from ecoscan.modules.accounts.service import AccountService
from ecoscan.modules.marketplace.schemas import ListingOut, ReviewDecision
from ecoscan.modules.notifications.schemas import NotificationCreate, NotificationOut
from ecoscan.modules.notifications.service import NotificationService
from ecoscan.modules.review.schemas import (
    ListingReviewOut,
    PendingScanOut,
    ScanReviewOut,
)
from ecoscan.modules.review.service import ReviewQueue
from ecoscan.modules.scans.schemas import ScanOut

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_review_queue(db: Session = Depends(get_db)) -> ReviewQueue:
    return ReviewQueue(db)


def get_account_service(db: Session = Depends(get_db)) -> AccountService:
    return AccountService(db)


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


# ==================== Scan review ====================


@router.get("/scans/pending", response_model=List[PendingScanOut])
def pending_scans(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    actor: ActorContext = Depends(oauth2.get_admin_actor),
    queue: ReviewQueue = Depends(get_review_queue),
):
    """Scans waiting for a reviewer, oldest first."""
    results = []
    for scan in queue.pending_scans(actor, skip=skip, limit=limit):
        item = PendingScanOut.model_validate(scan)
        item.username = scan.account.display_name
        results.append(item)
    return results


@router.post("/scans/{scan_id}/approve", response_model=ScanReviewOut)
def approve_scan(
    scan_id: int,
    actor: ActorContext = Depends(oauth2.get_admin_actor),
    queue: ReviewQueue = Depends(get_review_queue),
):
    outcome = queue.approve_scan(actor, scan_id)
    return ScanReviewOut(changed=outcome.changed, scan=ScanOut.model_validate(outcome.record))


@router.post("/scans/{scan_id}/reject", response_model=ScanReviewOut)
def reject_scan(
    scan_id: int,
    actor: ActorContext = Depends(oauth2.get_admin_actor),
    queue: ReviewQueue = Depends(get_review_queue),
):
    outcome = queue.reject_scan(actor, scan_id)
    return ScanReviewOut(changed=outcome.changed, scan=ScanOut.model_validate(outcome.record))


# ==================== Listing review ====================


@router.get("/listings/pending", response_model=List[ListingOut])
def pending_listings(
    actor: ActorContext = Depends(oauth2.get_admin_actor),
    queue: ReviewQueue = Depends(get_review_queue),
):
    return queue.pending_listings(actor)


@router.post("/listings/{listing_id}/approve", response_model=ListingReviewOut)
def approve_listing(
    listing_id: int,
    payload: Optional[ReviewDecision] = None,
    actor: ActorContext = Depends(oauth2.get_admin_actor),
    queue: ReviewQueue = Depends(get_review_queue),
):
    outcome = queue.approve_listing(actor, listing_id, payload.note if payload else None)
    return ListingReviewOut(
        changed=outcome.changed, listing=ListingOut.model_validate(outcome.record)
    )


@router.post("/listings/{listing_id}/reject", response_model=ListingReviewOut)
def reject_listing(
    listing_id: int,
    payload: Optional[ReviewDecision] = None,
    actor: ActorContext = Depends(oauth2.get_admin_actor),
    queue: ReviewQueue = Depends(get_review_queue),
):
    outcome = queue.reject_listing(actor, listing_id, payload.note if payload else None)
    return ListingReviewOut(
        changed=outcome.changed, listing=ListingOut.model_validate(outcome.record)
    )


# ==================== Accounts ====================


@router.get("/accounts", response_model=List[AccountOut])
def list_accounts(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    actor: ActorContext = Depends(oauth2.get_admin_actor),
    service: AccountService = Depends(get_account_service),
):
    return service.list_accounts(actor, skip=skip, limit=limit)


@router.patch("/accounts/{account_id}/role", response_model=AccountOut)
def update_role(
    account_id: int,
    payload: AdminRoleUpdate,
    actor: ActorContext = Depends(oauth2.get_admin_actor),
    service: AccountService = Depends(get_account_service),
):
    return service.set_admin(actor, account_id, payload.is_admin)


# ==================== Notifications ====================


@router.post(
    "/notifications", status_code=status.HTTP_201_CREATED, response_model=NotificationOut
)
def send_notification(
    payload: NotificationCreate,
    actor: ActorContext = Depends(oauth2.get_admin_actor),
    service: NotificationService = Depends(get_notification_service),
):
    """Send to one account, or broadcast when no target is given."""
    return service.send(actor, payload)


@router.get("/notifications", response_model=List[NotificationOut])
def recent_notifications(
    actor: ActorContext = Depends(oauth2.get_admin_actor),
    service: NotificationService = Depends(get_notification_service),
):
    return service.list_recent(actor)


@router.delete("/notifications/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: int,
    actor: ActorContext = Depends(oauth2.get_admin_actor),
    service: NotificationService = Depends(get_notification_service),
):
    service.delete(actor, notification_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
