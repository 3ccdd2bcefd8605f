"""Accounts domain package exports."""

from .actor import ActorContext
from .models import Account

__all__ = ["Account", "ActorContext"]
