"""Column helpers shared by the domain models.

- Enumerations are stored as their lowercase values in a plain VARCHAR so the persisted
  strings match the public contract (``pending``, ``pending_review``...) on every backend.
- JSON payloads use JSONB on PostgreSQL and JSON elsewhere.
"""

import enum
from datetime import datetime, timezone
from typing import Type

from sqlalchemy import JSON
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def enum_type(enum_cls: Type[enum.Enum], name: str) -> SQLAlchemyEnum:
    return SQLAlchemyEnum(
        enum_cls,
        name=name,
        native_enum=False,
        validate_strings=True,
        length=32,
        values_callable=lambda members: [member.value for member in members],
    )


def json_type():
    """
    Return a JSONB type that stores JSON on SQLite.
    """
    return PG_JSONB().with_variant(JSON, "sqlite")


__all__ = ["enum_type", "json_type", "utcnow"]
