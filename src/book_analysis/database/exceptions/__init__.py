"""Analysis store exceptions."""

from .database_exceptions import (
    CollectionError,
    ConfigurationError,
    ConnectionError,
    DatabaseError,
    QueryError,
    ValidationError,
)

__all__ = [
    "DatabaseError",
    "ConfigurationError",
    "ConnectionError",
    "CollectionError",
    "QueryError",
    "ValidationError",
]
