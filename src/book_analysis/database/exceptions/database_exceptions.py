"""Errors raised by the analysis stores."""


class DatabaseError(Exception):
    """Base class for analysis store failures; keeps the driver error that caused it."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class ConnectionError(DatabaseError):
    """The Weaviate instance could not be reached."""

    pass


class CollectionError(DatabaseError):
    """Creating, writing to or deleting from the analysis collection failed."""

    pass


class ValidationError(DatabaseError):
    """A record or a paging argument was rejected before touching the store."""

    pass


class ConfigurationError(DatabaseError):
    """``ANALYSIS_STORE`` or the Weaviate settings are unusable."""

    pass


class QueryError(DatabaseError):
    """Reading, listing or counting stored analyses failed."""

    pass
