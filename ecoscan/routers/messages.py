"""Messaging router: buyer/seller conversations attached to listings."""

from typing import List

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ecoscan import oauth2
from ecoscan.core.database import get_db
from ecoscan.core.middleware.rate_limit import limiter
from ecoscan.modules.accounts.actor import ActorContext
from ecoscan.modules.messaging.schemas import (
    ConversationOut,
    MarkReadOut,
    MessageCreate,
    MessageOut,
)
from ecoscan.modules.messaging.service import MessagingService

router = APIRouter(prefix="/messages", tags=["Messages"])


def get_messaging_service(db: Session = Depends(get_db)) -> MessagingService:
    return MessagingService(db)


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=MessageOut)
@limiter.limit("60/minute")
def send_message(
    request: Request,
    payload: MessageCreate,
    actor: ActorContext = Depends(oauth2.get_member_actor),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.send(actor, payload)


@router.get("/conversations", response_model=List[ConversationOut])
def list_conversations(
    actor: ActorContext = Depends(oauth2.get_member_actor),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.conversations(actor)


@router.get("/thread", response_model=List[MessageOut])
def read_thread(
    listing_id: int = Query(...),
    counterpart_id: int = Query(...),
    actor: ActorContext = Depends(oauth2.get_member_actor),
    service: MessagingService = Depends(get_messaging_service),
):
    """All messages about one listing between the caller and one counterpart, oldest first."""
    return service.thread(actor, listing_id, counterpart_id)


@router.post("/read", response_model=MarkReadOut)
def mark_thread_read(
    listing_id: int = Query(...),
    counterpart_id: int = Query(...),
    actor: ActorContext = Depends(oauth2.get_member_actor),
    service: MessagingService = Depends(get_messaging_service),
):
    return MarkReadOut(updated=service.mark_read(actor, listing_id, counterpart_id))
