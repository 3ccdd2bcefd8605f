"""Marketplace router: browsing, listing management and compliance submission."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ecoscan import oauth2
from ecoscan.core.database import get_db
from ecoscan.core.middleware.rate_limit import limiter
from ecoscan.modules.accounts.actor import ActorContext
from ecoscan.modules.gateways.contracts import ComplianceGateway
from ecoscan.modules.gateways.dependencies import get_compliance_gateway
from ecoscan.modules.marketplace.schemas import (
    ListingCreate,
    ListingOut,
    ListingUpdate,
    SubmissionOut,
)
from ecoscan.modules.marketplace.service import ListingLifecycle
from ecoscan.modules.scans.models import ItemCategory

router = APIRouter(prefix="/listings", tags=["Marketplace"])


def get_listing_service(
    db: Session = Depends(get_db),
    compliance: ComplianceGateway = Depends(get_compliance_gateway),
) -> ListingLifecycle:
    return ListingLifecycle(db, compliance=compliance)


@router.get("/", response_model=List[ListingOut])
def browse_listings(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    category: Optional[ItemCategory] = None,
    service: ListingLifecycle = Depends(get_listing_service),
):
    """Active listings, newest first."""
    return service.browse(
        skip=skip, limit=limit, category=category.value if category else None
    )


@router.get("/mine", response_model=List[ListingOut])
def my_listings(
    actor: ActorContext = Depends(oauth2.get_member_actor),
    service: ListingLifecycle = Depends(get_listing_service),
):
    return service.mine(actor)


@router.get("/{listing_id}", response_model=ListingOut)
def read_listing(
    listing_id: int,
    actor: Optional[ActorContext] = Depends(oauth2.get_optional_actor),
    service: ListingLifecycle = Depends(get_listing_service),
):
    return service.get_listing(actor, listing_id)


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=ListingOut)
@limiter.limit("30/hour")
def create_listing(
    request: Request,
    payload: ListingCreate,
    actor: ActorContext = Depends(oauth2.get_member_actor),
    service: ListingLifecycle = Depends(get_listing_service),
):
    return service.create_listing(actor, payload)


@router.patch("/{listing_id}", response_model=ListingOut)
def update_listing(
    listing_id: int,
    payload: ListingUpdate,
    actor: ActorContext = Depends(oauth2.get_member_actor),
    service: ListingLifecycle = Depends(get_listing_service),
):
    return service.update_listing(actor, listing_id, payload)


@router.post("/{listing_id}/submit", response_model=SubmissionOut)
def submit_listing(
    listing_id: int,
    actor: ActorContext = Depends(oauth2.get_member_actor),
    service: ListingLifecycle = Depends(get_listing_service),
):
    """Run the compliance check on a draft; rejected drafts answer 422."""
    result = service.submit(actor, listing_id)
    return SubmissionOut(
        listing=ListingOut.model_validate(result.listing),
        risk_score=result.verdict.risk_score,
        action=result.verdict.action,
        violations=list(result.verdict.violations),
    )


@router.post("/{listing_id}/cancel", response_model=ListingOut)
def cancel_listing(
    listing_id: int,
    actor: ActorContext = Depends(oauth2.get_member_actor),
    service: ListingLifecycle = Depends(get_listing_service),
):
    return service.cancel(actor, listing_id)
