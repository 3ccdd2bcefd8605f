"""Caller resolution for every request.

Responsibilities:
- Create and verify HS-signed access tokens for registered accounts.
- Resolve guests from the ``X-Device-Id`` header, creating the guest row on first use.
- Turn the resolved account into an ActorContext and record it on ``request.state``.
"""

# ============================================
# Imports and Dependencies
# ============================================
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from ecoscan.core.config import settings
from ecoscan.core.database import get_db
from ecoscan.core.exceptions import AuthenticationException, InvalidTokenException
from ecoscan.modules.accounts.actor import ActorContext
from ecoscan.modules.accounts.models import Account
from ecoscan.modules.accounts.service import AccountService

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

ALGORITHM = settings.algorithm
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes


# ============================================
# Token Creation / Verification
# ============================================
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign ``data`` with an ``exp`` claim; ``account_id`` is normalised to int."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    if "account_id" in to_encode:
        to_encode["account_id"] = int(to_encode["account_id"])
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def verify_access_token(token: str) -> int:
    """Return the account id carried by ``token`` or raise InvalidTokenException."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError as exc:
        logger.warning(f"JWT Error: {exc}")
        raise InvalidTokenException() from exc

    account_id = payload.get("account_id")
    try:
        return int(account_id)
    except (TypeError, ValueError):
        logger.warning("Token payload without a usable account_id")
        raise InvalidTokenException() from None


# ============================================
# Actor Dependencies
# ============================================
def _resolve_account(
    db: Session, token: Optional[str], device_id: Optional[str]
) -> Optional[Account]:
    if token:
        account = db.get(Account, verify_access_token(token))
        if account is None or account.is_guest:
            raise InvalidTokenException()
        return account
    if device_id:
        return AccountService(db).start_guest(device_id)
    return None


def get_optional_actor(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    x_device_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> Optional[ActorContext]:
    account = _resolve_account(db, token, x_device_id)
    if account is None:
        return None
    request.state.account_id = account.id
    return ActorContext.for_account(account)


def get_actor(
    actor: Optional[ActorContext] = Depends(get_optional_actor),
) -> ActorContext:
    """Authenticated member or device-identified guest."""
    if actor is None:
        raise AuthenticationException(
            error_code="not_authenticated",
            message="Sign in or start a guest session",
        )
    return actor


def get_member_actor(actor: ActorContext = Depends(get_actor)) -> ActorContext:
    return actor.require_member()


def get_admin_actor(actor: ActorContext = Depends(get_actor)) -> ActorContext:
    return actor.require_admin()


__all__ = [
    "create_access_token",
    "get_actor",
    "get_admin_actor",
    "get_member_actor",
    "get_optional_actor",
    "oauth2_scheme",
    "verify_access_token",
]
