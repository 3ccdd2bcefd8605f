"""Persisted notifications: the default notification sink plus inbox and admin tools."""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from sqlalchemy import or_

from ecoscan.core.database.query_helpers import paginate_query
from ecoscan.core.database.transactions import TransactionalService
from ecoscan.core.exceptions import ResourceNotFoundException
from ecoscan.modules.accounts.actor import ActorContext
from ecoscan.modules.accounts.models import Account
from ecoscan.modules.notifications.models import Notification, NotificationKind
from ecoscan.modules.notifications.schemas import NotificationCreate

logger = logging.getLogger(__name__)

ADMIN_LIST_LIMIT = 50


class NotificationService(TransactionalService):
    """Writes notification rows; delivery and read tracking happen elsewhere."""

    def push(
        self,
        target_account_id: Optional[int],
        title: str,
        message: str,
        kind: Union[NotificationKind, str] = NotificationKind.UPDATE,
        *,
        created_by: Optional[int] = None,
    ) -> Notification:
        """Queue a notification for one account, or everyone when target is None."""
        notification = Notification(
            target_account_id=target_account_id,
            title=title,
            message=message,
            kind=NotificationKind(kind),
            created_by=created_by,
        )
        with self.transaction():
            self.db.add(notification)
            self.db.flush()
        logger.info(
            "Notification %s (%s) queued for %s",
            notification.id,
            notification.kind.value,
            target_account_id or "everyone",
        )
        return notification

    def inbox(
        self, actor: ActorContext, *, skip: int = 0, limit: int = 50
    ) -> List[Notification]:
        query = (
            self.db.query(Notification)
            .filter(
                or_(
                    Notification.target_account_id == actor.account_id,
                    Notification.target_account_id.is_(None),
                )
            )
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        return paginate_query(query, skip, limit).all()

    def send(self, actor: ActorContext, payload: NotificationCreate) -> Notification:
        actor.require_admin()
        if payload.target_account_id is not None:
            if self.db.get(Account, payload.target_account_id) is None:
                raise ResourceNotFoundException("Account", payload.target_account_id)
        return self.push(
            payload.target_account_id,
            payload.title,
            payload.message,
            payload.kind,
            created_by=actor.account_id,
        )

    def list_recent(self, actor: ActorContext) -> List[Notification]:
        actor.require_admin()
        return (
            self.db.query(Notification)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(ADMIN_LIST_LIMIT)
            .all()
        )

    def delete(self, actor: ActorContext, notification_id: int) -> None:
        actor.require_admin()
        notification = self.db.get(Notification, notification_id)
        if notification is None:
            raise ResourceNotFoundException("Notification", notification_id)
        with self.transaction():
            self.db.delete(notification)
        logger.info(
            "Notification %s deleted by %s", notification_id, actor.account_id
        )


__all__ = ["ADMIN_LIST_LIMIT", "NotificationService"]
