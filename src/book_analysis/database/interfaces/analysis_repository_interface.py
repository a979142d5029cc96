"""Repository interface for stored analysis results."""

from abc import ABC, abstractmethod

from ...data_models.analysis_record import AnalysisPage, AnalysisRecord, Pagination
from ..exceptions.database_exceptions import ValidationError

SORT_ORDERS = ("asc", "desc")


class AnalysisRepository(ABC):
    """
    Abstract base class for analysis storage.

    One record per book identifier. Writes are create-or-replace with no
    concurrency guard: when two runs for the same book finish together, the
    last write wins.
    """

    @abstractmethod
    def get_by_book_id(self, book_id: str) -> AnalysisRecord | None:
        """
        Retrieve the stored analysis for a book.

        Args:
            book_id: The book identifier

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    def upsert(self, record: AnalysisRecord) -> str:
        """
        Create or replace the analysis for ``record.book_id``.

        Args:
            record: A sanitized analysis record

        Returns:
            The storage ID of the written record
        """
        pass

    @abstractmethod
    def delete(self, book_id: str) -> bool:
        """
        Delete the analysis for a book.

        Returns:
            True if a record was deleted, False if none existed
        """
        pass

    @abstractmethod
    def list_all(
        self, page: int = 1, limit: int = 10, sort_order: str = "desc"
    ) -> AnalysisPage:
        """
        List stored analyses, most recently updated first by default.

        Args:
            page: One-based page number
            limit: Records per page
            sort_order: "asc" or "desc" on update time

        Returns:
            The requested page plus pagination totals
        """
        pass

    @abstractmethod
    def count(self) -> int:
        """Count stored analyses."""
        pass

    def close(self) -> None:
        """Release any held connection."""
        pass

    @staticmethod
    def validate_page_args(page: int, limit: int, sort_order: str) -> None:
        if page < 1:
            raise ValidationError(f"page must be >= 1, got {page}")
        if limit < 1:
            raise ValidationError(f"limit must be >= 1, got {limit}")
        if sort_order not in SORT_ORDERS:
            raise ValidationError(f"sort_order must be one of {SORT_ORDERS}, got {sort_order!r}")

    @staticmethod
    def build_page(
        records: list[AnalysisRecord], total: int, page: int, limit: int
    ) -> AnalysisPage:
        return AnalysisPage(
            records=records, pagination=Pagination.build(total, page, limit)
        )
