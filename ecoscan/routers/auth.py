"""Authentication router: registration, login and guest sessions.

Every successful registration or login folds the caller's guest progress into the
account when a ``device_id`` is supplied.
"""

# =====================================================
# ==================== Imports ========================
# =====================================================
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ecoscan import oauth2
from ecoscan.core.database import get_db
from ecoscan.core.middleware.rate_limit import limiter
from ecoscan.modules.accounts.models import Account
from ecoscan.modules.accounts.schemas import (
    AccountCreate,
    AccountLogin,
    AccountOut,
    GuestCreate,
    GuestSession,
    MigrationSummary,
    Token,
)
from ecoscan.modules.accounts.service import AccountService
from ecoscan.modules.guests.service import MigrationResult

router = APIRouter(prefix="/auth", tags=["Authentication"])


def get_account_service(db: Session = Depends(get_db)) -> AccountService:
    return AccountService(db)


def _token_response(account: Account, migration: Optional[MigrationResult]) -> Token:
    summary = None
    if migration is not None:
        summary = MigrationSummary(
            migrated=migration.migrated,
            scans_moved=migration.scans_moved,
            total_points=migration.total_points,
        )
    return Token(
        access_token=oauth2.create_access_token({"account_id": account.id}),
        account=AccountOut.model_validate(account),
        migration=summary,
    )


# =====================================================
# ==================== Endpoints ======================
# =====================================================


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=Token)
@limiter.limit("10/hour")
def register(
    request: Request,
    payload: AccountCreate,
    service: AccountService = Depends(get_account_service),
):
    """Create an account and migrate the device's guest progress into it."""
    account, migration = service.register(payload)
    return _token_response(account, migration)


@router.post("/login", response_model=Token)
@limiter.limit("6/minute")
def login(
    request: Request,
    payload: AccountLogin,
    service: AccountService = Depends(get_account_service),
):
    account, migration = service.authenticate(
        payload.email, payload.password, payload.device_id
    )
    return _token_response(account, migration)


@router.post("/guest", response_model=GuestSession)
@limiter.limit("20/hour")
def start_guest(
    request: Request,
    payload: GuestCreate,
    service: AccountService = Depends(get_account_service),
):
    """Get or create the guest account for a device; a device id is minted when absent."""
    guest = service.start_guest(payload.device_id)
    request.state.account_id = guest.id
    return GuestSession(device_id=guest.device_id, account=AccountOut.model_validate(guest))
