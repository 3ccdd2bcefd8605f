"""Order router: buying a listing with points and the caller's order history."""

from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ecoscan import oauth2
from ecoscan.core.database import get_db
from ecoscan.core.middleware.rate_limit import limiter
from ecoscan.modules.accounts.actor import ActorContext
from ecoscan.modules.marketplace.orders import OrderCoordinator
from ecoscan.modules.marketplace.schemas import OrderOut

router = APIRouter(tags=["Orders"])


def get_order_service(db: Session = Depends(get_db)) -> OrderCoordinator:
    return OrderCoordinator(db)


@router.post(
    "/listings/{listing_id}/purchase",
    status_code=status.HTTP_201_CREATED,
    response_model=OrderOut,
)
@limiter.limit("20/minute")
def purchase_listing(
    request: Request,
    listing_id: int,
    actor: ActorContext = Depends(oauth2.get_member_actor),
    service: OrderCoordinator = Depends(get_order_service),
):
    """Buy an active listing; exactly one concurrent buyer wins, the rest get 409."""
    return service.purchase(actor, listing_id)


@router.get("/orders", response_model=List[OrderOut])
def list_orders(
    actor: ActorContext = Depends(oauth2.get_member_actor),
    service: OrderCoordinator = Depends(get_order_service),
):
    return service.list_orders(actor)
