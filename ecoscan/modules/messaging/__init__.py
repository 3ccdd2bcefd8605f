"""Messaging domain package exports."""
from .models import Message

__all__ = ["Message"]
