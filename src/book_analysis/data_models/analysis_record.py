"""Stored form of an analysis result."""

import math
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from book_analysis.data_models.entities import (
    AnalysisMeta,
    AnalysisResult,
    CamelModel,
    Character,
    Interaction,
    Relationship,
    coerce_text,
    validate_records,
)


class AnalysisRecord(CamelModel):
    """
    One stored analysis, keyed by book identifier.

    Validation doubles as sanitization: every field is coerced to its declared
    type (records that cannot be coerced are dropped) before anything is
    written to a store.
    """

    book_id: str
    title: str = ""
    author: str = ""
    characters: list[Character] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    interactions: list[Interaction] = Field(default_factory=list)
    meta: AnalysisMeta = Field(default_factory=AnalysisMeta)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("book_id", "title", "author", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return coerce_text(value)

    @field_validator("book_id")
    @classmethod
    def _require_book_id(cls, value: str) -> str:
        if not value:
            raise ValueError("book_id is required")
        return value

    @field_validator("characters", mode="before")
    @classmethod
    def _sanitize_characters(cls, value: Any) -> list[Character]:
        return _sanitize(Character, value)

    @field_validator("relationships", mode="before")
    @classmethod
    def _sanitize_relationships(cls, value: Any) -> list[Relationship]:
        return _sanitize(Relationship, value)

    @field_validator("interactions", mode="before")
    @classmethod
    def _sanitize_interactions(cls, value: Any) -> list[Interaction]:
        return _sanitize(Interaction, value)

    @field_validator("meta", mode="before")
    @classmethod
    def _sanitize_meta(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, AnalysisMeta)) else {}

    @classmethod
    def from_result(
        cls, book_id: str, result: AnalysisResult | dict[str, Any]
    ) -> "AnalysisRecord":
        """Build a sanitized record from a result or a raw result document."""
        data = result.to_document() if isinstance(result, AnalysisResult) else dict(result)
        data["bookId"] = book_id
        return cls.model_validate(data)

    def to_result(self) -> AnalysisResult:
        return AnalysisResult(
            title=self.title,
            author=self.author,
            characters=self.characters,
            relationships=self.relationships,
            interactions=self.interactions,
            meta=self.meta,
        )


def _sanitize(model: type, value: Any) -> list:
    if isinstance(value, list) and all(isinstance(item, model) for item in value):
        return value
    return validate_records(
        model,
        [
            item.model_dump(by_alias=True) if isinstance(item, BaseModel) else item
            for item in value
        ]
        if isinstance(value, list)
        else value,
    )


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "Pagination":
        return cls(total=total, page=page, limit=limit, pages=math.ceil(total / limit))


class AnalysisPage(BaseModel):
    """One page of stored analyses."""

    records: list[AnalysisRecord]
    pagination: Pagination
