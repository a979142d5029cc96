"""Exceptions raised by the analysis services."""

from typing import Any


class AnalysisError(Exception):
    """Base exception for analysis runs; wraps the first fatal cause."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class AnalysisCancelledError(AnalysisError):
    """Raised when a run is cancelled through its CancellationToken."""

    pass


class AnalysisPersistenceError(AnalysisError):
    """Raised when a computed result could not be stored.

    The computed result is attached so the caller still gets it.
    """

    def __init__(
        self, message: str, result: Any, original_error: Exception | None = None
    ):
        super().__init__(message, original_error)
        self.result = result


class BookSourceError(AnalysisError):
    """Raised when book text or metadata cannot be fetched."""

    pass
