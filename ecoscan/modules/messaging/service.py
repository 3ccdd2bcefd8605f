"""Buyer/seller conversations keyed by listing and counterpart."""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from sqlalchemy import and_, or_, update

from ecoscan.core.database.transactions import TransactionalService
from ecoscan.core.exceptions import ResourceNotFoundException, ValidationException
from ecoscan.modules.accounts.actor import ActorContext
from ecoscan.modules.accounts.models import Account
from ecoscan.modules.marketplace.models import Listing
from ecoscan.modules.messaging.models import Message
from ecoscan.modules.messaging.schemas import ConversationOut, MessageCreate

logger = logging.getLogger(__name__)


def _between(a: int, b: int):
    return or_(
        and_(Message.sender_id == a, Message.receiver_id == b),
        and_(Message.sender_id == b, Message.receiver_id == a),
    )


class MessagingService(TransactionalService):
    def post(
        self, listing_id: int, sender_id: int, receiver_id: int, content: str
    ) -> Message:
        """Store a message without permission checks (used by the purchase flow)."""
        message = Message(
            listing_id=listing_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
        )
        with self.transaction():
            self.db.add(message)
            self.db.flush()
        return message

    def send(self, actor: ActorContext, payload: MessageCreate) -> Message:
        actor.require_member()
        listing = self.db.get(Listing, payload.listing_id)
        if listing is None:
            raise ResourceNotFoundException("Listing", payload.listing_id)
        if payload.receiver_id == actor.account_id:
            raise ValidationException("You cannot message yourself", "receiver_id")
        if listing.seller_id not in (actor.account_id, payload.receiver_id):
            raise ValidationException(
                "Messages must be between the seller and another member", "receiver_id"
            )
        receiver = self.db.get(Account, payload.receiver_id)
        if receiver is None or receiver.is_guest:
            raise ResourceNotFoundException("Account", payload.receiver_id)

        message = self.post(
            listing.id, actor.account_id, receiver.id, payload.content.strip()
        )
        logger.info(
            "Message %s sent on listing %s from %s to %s",
            message.id,
            listing.id,
            actor.account_id,
            receiver.id,
        )
        return message

    def thread(
        self, actor: ActorContext, listing_id: int, counterpart_id: int
    ) -> List[Message]:
        actor.require_member()
        return (
            self.db.query(Message)
            .filter(
                Message.listing_id == listing_id,
                _between(actor.account_id, counterpart_id),
            )
            .order_by(Message.created_at.asc(), Message.id.asc())
            .all()
        )

    def conversations(self, actor: ActorContext) -> List[ConversationOut]:
        """Latest message and unread count per (listing, counterpart), newest first."""
        actor.require_member()
        messages = (
            self.db.query(Message)
            .filter(
                or_(
                    Message.sender_id == actor.account_id,
                    Message.receiver_id == actor.account_id,
                )
            )
            .order_by(Message.created_at.desc(), Message.id.desc())
            .all()
        )

        threads: Dict[Tuple[int, int], dict] = {}
        for message in messages:
            counterpart = (
                message.receiver_id
                if message.sender_id == actor.account_id
                else message.sender_id
            )
            key = (message.listing_id, counterpart)
            entry = threads.get(key)
            if entry is None:
                entry = threads[key] = {"latest": message, "unread": 0}
            if message.receiver_id == actor.account_id and not message.is_read:
                entry["unread"] += 1

        conversations = []
        for (listing_id, counterpart_id), entry in threads.items():
            latest = entry["latest"]
            counterpart = self.db.get(Account, counterpart_id)
            conversations.append(
                ConversationOut(
                    listing_id=listing_id,
                    listing_title=latest.listing.title if latest.listing else None,
                    counterpart_id=counterpart_id,
                    counterpart_name=counterpart.display_name if counterpart else None,
                    last_message=latest.content,
                    last_message_at=latest.created_at,
                    unread_count=entry["unread"],
                )
            )
        return conversations

    def mark_read(self, actor: ActorContext, listing_id: int, counterpart_id: int) -> int:
        actor.require_member()
        with self.transaction():
            result = self.db.execute(
                update(Message)
                .where(
                    Message.listing_id == listing_id,
                    Message.sender_id == counterpart_id,
                    Message.receiver_id == actor.account_id,
                    Message.is_read.is_(False),
                )
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount


__all__ = ["MessagingService"]
