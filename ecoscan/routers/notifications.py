"""Notifications router: the caller's inbox."""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ecoscan import oauth2
from ecoscan.core.database import get_db
from ecoscan.modules.accounts.actor import ActorContext
from ecoscan.modules.notifications.schemas import NotificationOut
from ecoscan.modules.notifications.service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


@router.get("/", response_model=List[NotificationOut])
def get_notifications(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    actor: ActorContext = Depends(oauth2.get_actor),
    service: NotificationService = Depends(get_notification_service),
):
    """Notifications addressed to the caller plus broadcasts, newest first."""
    return service.inbox(actor, skip=skip, limit=limit)
