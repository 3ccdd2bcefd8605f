"""Account router: the caller's profile and reward stats."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ecoscan import oauth2
from ecoscan.core.database import get_db
from ecoscan.modules.accounts.actor import ActorContext
from ecoscan.modules.accounts.schemas import AccountMe, AccountOut, StatsOut
from ecoscan.modules.accounts.service import AccountService

router = APIRouter(prefix="/accounts", tags=["Accounts"])


def get_account_service(db: Session = Depends(get_db)) -> AccountService:
    return AccountService(db)


@router.get("/me", response_model=AccountMe)
def read_me(
    actor: ActorContext = Depends(oauth2.get_actor),
    service: AccountService = Depends(get_account_service),
):
    account = service.get_account(actor.account_id)
    return AccountMe(
        **AccountOut.model_validate(account).model_dump(),
        stats=service.stats(actor.account_id),
    )


@router.get("/me/stats", response_model=StatsOut)
def read_stats(
    actor: ActorContext = Depends(oauth2.get_actor),
    service: AccountService = Depends(get_account_service),
):
    """Points, level, streak and today's scan count."""
    return service.stats(actor.account_id)
