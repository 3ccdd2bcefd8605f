"""Point balances, levels and streaks.

Every write is a single conditional UPDATE evaluated by the database, so two requests
crediting or debiting the same account can never lose an update, and a debit that would
overdraw matches no row instead of producing a negative balance. The level column is
recomputed in the same statement from the new total.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import case, or_, select, update

from ecoscan.core.database.transactions import TransactionalService
from ecoscan.core.events import LevelUp
from ecoscan.core.exceptions import InsufficientFunds, ResourceNotFoundException
from ecoscan.modules.accounts.models import Account

logger = logging.getLogger(__name__)

POINTS_PER_LEVEL = 100


def level_for(total_points: int) -> int:
    return max(total_points, 0) // POINTS_PER_LEVEL + 1


@dataclass(frozen=True)
class Balance:
    account_id: int
    total_points: int
    level: int
    streak: int
    items_recycled: int
    pending_points: int


@dataclass(frozen=True)
class StatsSnapshot:
    """Stats carried over from a guest account into a newly authenticated one."""

    total_points: int
    streak: int
    items_recycled: int
    pending_points: int
    last_scan_date: Optional[date] = None


class PointsLedger(TransactionalService):
    """Owns total/pending points, level and streak of an account."""

    def credit(self, account_id: int, amount: int, *, items_recycled: int = 0) -> Balance:
        if amount < 0:
            raise ValueError("credit amount must be non-negative")
        with self.transaction():
            self._apply(
                update(Account)
                .where(Account.id == account_id)
                .values(
                    total_points=Account.total_points + amount,
                    level=(Account.total_points + amount) // POINTS_PER_LEVEL + 1,
                    items_recycled=Account.items_recycled + items_recycled,
                ),
                account_id,
            )
            balance = self.balance(account_id)
            self._announce_level(account_id, balance.total_points - amount, balance)
        logger.info(
            "Credited %s points to account %s (total=%s)",
            amount,
            account_id,
            balance.total_points,
        )
        return balance

    def debit(self, account_id: int, amount: int) -> Balance:
        """Remove points; fails with InsufficientFunds and no effect when it would overdraw."""
        if amount < 0:
            raise ValueError("debit amount must be non-negative")
        with self.transaction():
            result = self.db.execute(
                update(Account)
                .where(Account.id == account_id, Account.total_points >= amount)
                .values(
                    total_points=Account.total_points - amount,
                    level=(Account.total_points - amount) // POINTS_PER_LEVEL + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                current = self.balance(account_id)
                raise InsufficientFunds(required=amount, available=current.total_points)
            self.expire_cached(Account, account_id)
            balance = self.balance(account_id)
        logger.info(
            "Debited %s points from account %s (total=%s)",
            amount,
            account_id,
            balance.total_points,
        )
        return balance

    def recompute_level(self, account_id: int) -> Balance:
        """Re-derive the stored level from total points."""
        with self.transaction():
            before = self.balance(account_id)
            self._apply(
                update(Account)
                .where(Account.id == account_id)
                .values(level=Account.total_points // POINTS_PER_LEVEL + 1),
                account_id,
            )
            balance = self.balance(account_id)
            if balance.level > before.level:
                self.emit(
                    LevelUp(
                        account_id=account_id,
                        old_level=before.level,
                        new_level=balance.level,
                    )
                )
        return balance

    def adjust_pending(self, account_id: int, delta: int) -> Balance:
        """Move the informational pending total; clamps at zero."""
        with self.transaction():
            new_value = Account.pending_points + delta
            self._apply(
                update(Account)
                .where(Account.id == account_id)
                .values(pending_points=case((new_value < 0, 0), else_=new_value)),
                account_id,
            )
            return self.balance(account_id)

    def record_activity(self, account_id: int, today: date) -> Balance:
        """Advance the daily streak for a scan made on ``today``."""
        yesterday = today - timedelta(days=1)
        with self.transaction():
            self._apply(
                update(Account)
                .where(Account.id == account_id)
                .values(
                    streak=case(
                        (Account.last_scan_date == today, Account.streak),
                        (Account.last_scan_date == yesterday, Account.streak + 1),
                        else_=1,
                    ),
                    last_scan_date=today,
                ),
                account_id,
            )
            return self.balance(account_id)

    def restore(self, account_id: int, snapshot: StatsSnapshot) -> Balance:
        """Overwrite the balance columns with a snapshot taken elsewhere."""
        total = max(snapshot.total_points, 0)
        with self.transaction():
            before = self.balance(account_id)
            self._apply(
                update(Account)
                .where(Account.id == account_id)
                .values(
                    total_points=total,
                    level=level_for(total),
                    streak=max(snapshot.streak, 0),
                    items_recycled=max(snapshot.items_recycled, 0),
                    pending_points=max(snapshot.pending_points, 0),
                    last_scan_date=snapshot.last_scan_date,
                ),
                account_id,
            )
            balance = self.balance(account_id)
            self._announce_level(account_id, before.total_points, balance)
        return balance

    def merge(self, account_id: int, snapshot: StatsSnapshot) -> Balance:
        """Add a snapshot on top of an established balance.

        Totals, items and pending points are summed. The streak follows whichever side
        scanned most recently.
        """
        points = max(snapshot.total_points, 0)
        values = {
            "total_points": Account.total_points + points,
            "level": (Account.total_points + points) // POINTS_PER_LEVEL + 1,
            "items_recycled": Account.items_recycled + max(snapshot.items_recycled, 0),
            "pending_points": Account.pending_points + max(snapshot.pending_points, 0),
        }
        if snapshot.last_scan_date is not None:
            newer = or_(
                Account.last_scan_date.is_(None),
                Account.last_scan_date < snapshot.last_scan_date,
            )
            values["streak"] = case((newer, max(snapshot.streak, 0)), else_=Account.streak)
            values["last_scan_date"] = case(
                (newer, snapshot.last_scan_date), else_=Account.last_scan_date
            )
        with self.transaction():
            before = self.balance(account_id)
            self._apply(
                update(Account).where(Account.id == account_id).values(**values),
                account_id,
            )
            balance = self.balance(account_id)
            self._announce_level(account_id, before.total_points, balance)
        return balance

    def balance(self, account_id: int) -> Balance:
        row = self.db.execute(
            select(
                Account.total_points,
                Account.level,
                Account.streak,
                Account.items_recycled,
                Account.pending_points,
            ).where(Account.id == account_id)
        ).first()
        if row is None:
            raise ResourceNotFoundException("Account", account_id)
        return Balance(account_id, *row)

    def _apply(self, stmt, account_id: int) -> None:
        result = self.db.execute(stmt.execution_options(synchronize_session=False))
        if result.rowcount != 1:
            raise ResourceNotFoundException("Account", account_id)
        self.expire_cached(Account, account_id)

    def _announce_level(self, account_id: int, old_total: int, balance: Balance) -> None:
        old_level = level_for(old_total)
        if balance.level > old_level:
            logger.info(
                "Account %s reached level %s", account_id, balance.level
            )
            self.emit(
                LevelUp(
                    account_id=account_id, old_level=old_level, new_level=balance.level
                )
            )


__all__ = [
    "Balance",
    "POINTS_PER_LEVEL",
    "PointsLedger",
    "StatsSnapshot",
    "level_for",
]
