"""
Query helpers shared by the list endpoints.
"""

from sqlalchemy.orm import Query, joinedload


def with_joined_loads(query: Query, *relationships) -> Query:
    """Apply joinedload for multiple relationships."""
    for rel in relationships:
        query = query.options(joinedload(rel))
    return query


def paginate_query(query: Query, skip: int = 0, limit: int = 50) -> Query:
    """Apply pagination to a query with validation."""
    limit = min(max(1, limit), 100)
    skip = max(0, skip)
    return query.offset(skip).limit(limit)
