"""Notifications domain package exports."""
from .models import Notification, NotificationKind

__all__ = ["Notification", "NotificationKind"]
