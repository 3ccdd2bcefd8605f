"""Folding a guest device's progress into an authenticated account.

Guest progress lives in an `Account` row keyed by `device_id`. A brand-new account takes the
guest row's stats as its own, while an established account gets them added on top. Either
way migration hands every guest scan to the new owner and deletes the guest row, all in one
transaction. Once the guest row is gone there is nothing left to migrate, so retries and
concurrent duplicates fall through as no-ops.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from ecoscan.core.database.transactions import TransactionalService
from ecoscan.core.events import GuestMigrated
from ecoscan.core.exceptions import MigrationPartialFailure
from ecoscan.modules.accounts.ledger import PointsLedger, StatsSnapshot
from ecoscan.modules.accounts.models import Account
from ecoscan.modules.scans.models import ScanRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MigrationResult:
    migrated: bool
    scans_moved: int = 0
    total_points: int = 0


class _NothingToMigrate(Exception):
    """Another request already consumed the guest record."""


class GuestMigrator(TransactionalService):
    """Reconciles device-local guest state into the authoritative account exactly once."""

    def migrate(self, device_id: str, account: Account) -> MigrationResult:
        if not device_id:
            return MigrationResult(migrated=False)

        guest = self.db.execute(
            select(Account).where(
                Account.device_id == device_id, Account.is_guest.is_(True)
            )
        ).scalar_one_or_none()
        if guest is None or guest.id == account.id:
            logger.info("No guest data to migrate for device %s", device_id)
            return MigrationResult(migrated=False)

        guest_id = guest.id
        snapshot = StatsSnapshot(
            total_points=guest.total_points,
            streak=guest.streak,
            items_recycled=guest.items_recycled,
            pending_points=guest.pending_points,
            last_scan_date=guest.last_scan_date,
        )
        ledger = PointsLedger(self.db, bus=self.bus)

        try:
            with self.transaction():
                fresh = self._is_fresh(ledger, account.id)
                moved = self.db.execute(
                    update(ScanRecord)
                    .where(ScanRecord.account_id == guest_id)
                    .values(account_id=account.id)
                    .execution_options(synchronize_session=False)
                ).rowcount
                removed = self.db.execute(
                    delete(Account)
                    .where(Account.id == guest_id, Account.is_guest.is_(True))
                    .execution_options(synchronize_session=False)
                ).rowcount
                if removed != 1:
                    raise _NothingToMigrate()
                self.db.expunge(guest)
                if fresh:
                    balance = ledger.restore(account.id, snapshot)
                else:
                    balance = ledger.merge(account.id, snapshot)
                self.emit(
                    GuestMigrated(
                        device_id=device_id,
                        account_id=account.id,
                        scans_moved=moved,
                        total_points=balance.total_points,
                    )
                )
        except _NothingToMigrate:
            logger.info("Guest %s was already migrated", device_id)
            return MigrationResult(migrated=False)
        except SQLAlchemyError as exc:
            logger.error(
                "Guest migration failed for device %s into account %s: %s",
                device_id,
                account.id,
                exc,
            )
            raise MigrationPartialFailure(device_id, reason=type(exc).__name__) from exc

        logger.info(
            "Migrated guest %s into account %s (%s scans, %s points)",
            device_id,
            account.id,
            moved,
            balance.total_points,
        )
        return MigrationResult(
            migrated=True, scans_moved=moved, total_points=balance.total_points
        )

    def _is_fresh(self, ledger: PointsLedger, account_id: int) -> bool:
        """True while the account has no history of its own to protect."""
        balance = ledger.balance(account_id)
        if balance.total_points or balance.pending_points or balance.items_recycled:
            return False
        owned = self.db.execute(
            select(func.count(ScanRecord.id)).where(ScanRecord.account_id == account_id)
        ).scalar_one()
        return owned == 0


__all__ = ["GuestMigrator", "MigrationResult"]
