"""Account registration, login, guest sessions and stats."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, time, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from ecoscan.core.database.query_helpers import paginate_query
from ecoscan.core.database.transactions import TransactionalService
from ecoscan.core.exceptions import (
    InvalidCredentialsException,
    ResourceAlreadyExistsException,
    ResourceNotFoundException,
    ValidationException,
)
from ecoscan.modules.accounts.actor import ActorContext
from ecoscan.modules.accounts.models import Account
from ecoscan.modules.accounts.schemas import AccountCreate, StatsOut
from ecoscan.modules.accounts.security import hash_password, verify_password
from ecoscan.modules.guests.service import GuestMigrator, MigrationResult
from ecoscan.modules.scans.models import ScanRecord

logger = logging.getLogger(__name__)

GUEST_PREFIX = "guest_"


def new_device_id() -> str:
    return f"{GUEST_PREFIX}{secrets.token_hex(8)}"


class AccountService(TransactionalService):
    """Identity flows; guest migration runs as part of every authentication event."""

    def register(
        self, payload: AccountCreate
    ) -> Tuple[Account, Optional[MigrationResult]]:
        email = payload.email.lower()
        if self._by_email(email) is not None:
            raise ResourceAlreadyExistsException("Account", "email")

        account = Account(
            email=email,
            username=payload.username.strip(),
            hashed_password=hash_password(payload.password),
            is_guest=False,
        )
        try:
            with self.transaction():
                self.db.add(account)
                self.db.flush()
        except IntegrityError:
            raise ResourceAlreadyExistsException("Account", "email") from None
        self.db.refresh(account)
        logger.info("Registered account %s", account.id)
        return account, self._migrate(payload.device_id, account)

    def authenticate(
        self, email: str, password: str, device_id: Optional[str] = None
    ) -> Tuple[Account, Optional[MigrationResult]]:
        account = self._by_email(email.lower())
        if account is None or not verify_password(password, account.hashed_password):
            logger.warning("Failed login for %s", email)
            raise InvalidCredentialsException()
        return account, self._migrate(device_id, account)

    def start_guest(self, device_id: Optional[str] = None) -> Account:
        """Return the guest account for a device, creating it on first use."""
        device_id = device_id or new_device_id()
        if not device_id.startswith(GUEST_PREFIX):
            raise ValidationException("Device ids must start with 'guest_'", "device_id")

        existing = self._by_device(device_id)
        if existing is not None:
            return existing
        guest = Account(device_id=device_id, is_guest=True)
        try:
            with self.transaction():
                self.db.add(guest)
                self.db.flush()
        except IntegrityError:
            # Lost a race with another request creating the same device.
            existing = self._by_device(device_id)
            if existing is None:
                raise
            return existing
        self.db.refresh(guest)
        logger.info("Started guest session %s (account %s)", device_id, guest.id)
        return guest

    def get_account(self, account_id: int) -> Account:
        account = self.db.get(Account, account_id)
        if account is None:
            raise ResourceNotFoundException("Account", account_id)
        return account

    def stats(self, account_id: int, *, now: Optional[datetime] = None) -> StatsOut:
        account = self.get_account(account_id)
        now = now or datetime.now(timezone.utc)
        start_of_day = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)
        scans_today = self.db.execute(
            select(func.count(ScanRecord.id)).where(
                ScanRecord.account_id == account_id,
                ScanRecord.scanned_at >= start_of_day,
            )
        ).scalar_one()
        return StatsOut(
            total_points=account.total_points,
            level=account.level,
            streak=account.streak,
            items_recycled=account.items_recycled,
            pending_points=account.pending_points,
            scans_today=scans_today,
        )

    def list_accounts(
        self, actor: ActorContext, *, skip: int = 0, limit: int = 50
    ) -> List[Account]:
        actor.require_admin()
        query = self.db.query(Account).order_by(Account.created_at.desc(), Account.id.desc())
        return paginate_query(query, skip, limit).all()

    def set_admin(self, actor: ActorContext, account_id: int, is_admin: bool) -> Account:
        actor.require_admin()
        account = self.get_account(account_id)
        if account.is_guest:
            raise ValidationException("Guest accounts cannot be administrators")
        if account.id == actor.account_id and not is_admin:
            raise ValidationException("You cannot revoke your own admin role")
        with self.transaction():
            account.is_admin = is_admin
        logger.info(
            "Account %s admin role set to %s by %s", account_id, is_admin, actor.account_id
        )
        return account

    def _migrate(
        self, device_id: Optional[str], account: Account
    ) -> Optional[MigrationResult]:
        if not device_id:
            return None
        return GuestMigrator(self.db, bus=self.bus).migrate(device_id, account)

    def _by_email(self, email: str) -> Optional[Account]:
        return self.db.execute(
            select(Account).where(Account.email == email)
        ).scalar_one_or_none()

    def _by_device(self, device_id: str) -> Optional[Account]:
        return self.db.execute(
            select(Account).where(Account.device_id == device_id)
        ).scalar_one_or_none()


__all__ = ["AccountService", "GUEST_PREFIX", "new_device_id"]
