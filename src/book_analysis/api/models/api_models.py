"""Pydantic models for API requests and responses."""

from datetime import datetime

from pydantic import BaseModel, Field

from book_analysis.data_models.analysis_record import AnalysisRecord, Pagination
from book_analysis.data_models.entities import AnalysisMeta, CamelModel
from book_analysis.services.analysis_service import AnalysisOptions


class AnalysisRequest(CamelModel):
    """Options for one analysis run; camelCase or snake_case keys accepted."""
    provider: str | None = None
    chunk_size: int | None = Field(default=None, gt=0)
    delay_between_chunks: int | None = Field(default=None, ge=0)  # milliseconds
    override_cache: bool = False
    consistency_key: str | None = None

    # Supply the text directly instead of fetching it by book id
    content: str | None = None
    title: str | None = None
    author: str | None = None

    def to_options(self, provider: str) -> AnalysisOptions:
        options = AnalysisOptions(
            provider=provider,
            chunk_size=self.chunk_size,
            delay_between_chunks=self.delay_between_chunks,
            override_cache=self.override_cache,
        )
        if self.consistency_key:
            options.consistency_key = self.consistency_key
        return options


class AnalysisSummary(CamelModel):
    """A stored analysis without its record lists."""
    book_id: str
    title: str
    author: str
    meta: AnalysisMeta
    updated_at: datetime

    @classmethod
    def from_record(cls, record: AnalysisRecord) -> "AnalysisSummary":
        return cls(
            book_id=record.book_id,
            title=record.title,
            author=record.author,
            meta=record.meta,
            updated_at=record.updated_at,
        )


class AnalysisListResponse(BaseModel):
    """Response containing one page of stored analyses."""
    records: list[AnalysisSummary]
    pagination: Pagination


class DeleteResponse(CamelModel):
    book_id: str
    deleted: bool


class BookContentResponse(CamelModel):
    """Response containing the full text of a book."""
    book_id: str
    content: str
    length: int


class BookMetadataResponse(CamelModel):
    book_id: str
    title: str
    author: str
