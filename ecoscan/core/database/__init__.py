"""Core database access helpers.

Re-exports the engine, the `SessionLocal` factory and the `get_db` dependency from
`ecoscan.core.database.session` together with the declarative `Base`.
"""

from ecoscan.models.base import Base

from .query_helpers import paginate_query, with_joined_loads
from .session import SessionLocal, build_engine, engine, get_db
from .transactions import TransactionalService

__all__ = [
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
    "build_engine",
    "paginate_query",
    "with_joined_loads",
    "TransactionalService",
]
