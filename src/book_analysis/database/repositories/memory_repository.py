"""In-process analysis store, for tests and local runs without Weaviate."""

import logging
from datetime import UTC, datetime

from ...data_models.analysis_record import AnalysisPage, AnalysisRecord
from ..interfaces.analysis_repository_interface import AnalysisRepository

logger = logging.getLogger(__name__)


class InMemoryAnalysisRepository(AnalysisRepository):
    """Keeps records in a dict keyed by book identifier."""

    def __init__(self):
        self._records: dict[str, AnalysisRecord] = {}

    def get_by_book_id(self, book_id: str) -> AnalysisRecord | None:
        record = self._records.get(book_id)
        return record.model_copy(deep=True) if record else None

    def upsert(self, record: AnalysisRecord) -> str:
        existing = self._records.get(record.book_id)
        update = {"updated_at": datetime.now(UTC)}
        if existing is not None:
            update["created_at"] = existing.created_at
        self._records[record.book_id] = record.model_copy(update=update, deep=True)
        logger.debug(f"Stored analysis for book {record.book_id}")
        return record.book_id

    def delete(self, book_id: str) -> bool:
        return self._records.pop(book_id, None) is not None

    def list_all(
        self, page: int = 1, limit: int = 10, sort_order: str = "desc"
    ) -> AnalysisPage:
        self.validate_page_args(page, limit, sort_order)
        ordered = sorted(
            self._records.values(),
            key=lambda r: r.updated_at,
            reverse=sort_order == "desc",
        )
        start = (page - 1) * limit
        records = [r.model_copy(deep=True) for r in ordered[start : start + limit]]
        return self.build_page(records, len(ordered), page, limit)

    def count(self) -> int:
        return len(self._records)
