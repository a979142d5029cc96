"""Data models for the book analysis pipeline.

Model output is loosely shaped JSON. Everything that comes back from a
completion call is validated into these models exactly once, through
``ChunkExtraction.from_raw`` / ``AnalysisState.from_raw``; the ``before``
validators below coerce missing or mistyped optional fields to their
defaults so the merge code never has to guard against them.
"""

import logging
from enum import Enum
from typing import Any, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class Importance(str, Enum):
    """Narrative centrality of a character."""

    MAJOR = "major"
    SUPPORTING = "supporting"
    MINOR = "minor"

    @property
    def rank(self) -> int:
        return {"major": 3, "supporting": 2, "minor": 1}[self.value]

    @classmethod
    def coerce(cls, value: Any) -> "Importance":
        """Map any model-supplied value onto the closed vocabulary."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return cls.MINOR


class InteractionType(str, Enum):
    """Closed vocabulary of interaction kinds."""

    CONVERSATION = "conversation"
    PHYSICAL = "physical"
    OBSERVATION = "observation"
    REFERENCE = "reference"
    JOINT_PARTICIPATION = "joint-participation"

    @classmethod
    def coerce(cls, value: Any) -> "InteractionType":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower().replace("_", "-").replace(" ", "-")
            for member in cls:
                if member.value == lowered:
                    return member
        return cls.REFERENCE


def coerce_text(value: Any) -> str:
    """Coerce a scalar to a stripped string; anything else becomes ``""``."""
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def coerce_text_list(value: Any) -> list[str]:
    """Coerce a value to a list of non-empty strings."""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    items = [coerce_text(item) for item in value]
    return [item for item in items if item]


def coerce_count(value: Any) -> int:
    """Coerce a value to a non-negative integer count."""
    if isinstance(value, bool):
        return int(value)
    try:
        count = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(count, 0)


def dedupe_casefold(values: list[str], exclude: str | None = None) -> list[str]:
    """Drop case-insensitive duplicates (and ``exclude``), keeping first spelling."""
    seen = {exclude.lower()} if exclude else set()
    result = []
    for value in values:
        key = value.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(value)
    return result


class CamelModel(BaseModel):
    """Base model serialized with the camelCase keys of the output document."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Character(CamelModel):
    """A single character, identified by its canonical name."""

    name: str
    aliases: list[str] = Field(default_factory=list)
    description: str = ""
    importance: Importance = Importance.MINOR
    mentions: int = 0
    roles: list[str] = Field(default_factory=list)
    actions: list[str] = Field(default_factory=list)

    # Appearance tracking, filled in by the merge engine
    first_appearance: int | None = None
    last_appearance: int | None = None
    chunk_appearances: list[int] = Field(default_factory=list)
    arc_span: int | None = None
    appearance_count: int | None = None
    presence_pattern: str | None = None  # "continuous" | "intermittent"

    @field_validator("name", "description", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return coerce_text(value)

    @field_validator("aliases", "roles", "actions", mode="before")
    @classmethod
    def _coerce_lists(cls, value: Any) -> list[str]:
        return coerce_text_list(value)

    @field_validator("importance", mode="before")
    @classmethod
    def _coerce_importance(cls, value: Any) -> Importance:
        return Importance.coerce(value)

    @field_validator("mentions", mode="before")
    @classmethod
    def _coerce_mentions(cls, value: Any) -> int:
        return coerce_count(value)

    @field_validator("chunk_appearances", mode="before")
    @classmethod
    def _coerce_appearances(cls, value: Any) -> list[int]:
        if not isinstance(value, list):
            return []
        return [coerce_count(item) for item in value]

    @model_validator(mode="after")
    def _normalize(self) -> "Character":
        if not self.name:
            raise ValueError("character name is required")
        self.aliases = dedupe_casefold(self.aliases, exclude=self.name)
        self.roles = dedupe_casefold(self.roles)
        self.actions = list(dict.fromkeys(self.actions))
        return self


class Relationship(CamelModel):
    """How ``source`` perceives and relates to ``target``.

    ``(A, B)`` and ``(B, A)`` are separate records.
    """

    source: str
    target: str
    type: str = ""
    status: str = ""
    description: str = ""
    evidence: str = ""
    number_of_interactions: int = 0

    first_appearance: int | None = None
    last_appearance: int | None = None
    chunk_appearances: list[int] = Field(default_factory=list)
    arc_span: int | None = None
    appearance_count: int | None = None
    development_pattern: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_strength(cls, data: Any) -> Any:
        # older prompts report "strength" instead of numberOfInteractions
        if isinstance(data, dict) and "strength" in data:
            data = dict(data)
            strength = data.pop("strength")
            if "numberOfInteractions" not in data and "number_of_interactions" not in data:
                data["numberOfInteractions"] = strength
        return data

    @field_validator("source", "target", "type", "status", "description", "evidence", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return coerce_text(value)

    @field_validator("number_of_interactions", mode="before")
    @classmethod
    def _coerce_count(cls, value: Any) -> int:
        return coerce_count(value)

    @field_validator("chunk_appearances", mode="before")
    @classmethod
    def _coerce_appearances(cls, value: Any) -> list[int]:
        if not isinstance(value, list):
            return []
        return [coerce_count(item) for item in value]

    @model_validator(mode="after")
    def _require_ends(self) -> "Relationship":
        if not self.source or not self.target:
            raise ValueError("relationship source and target are required")
        return self

    @property
    def key(self) -> tuple[str, str]:
        """Ordered, case-insensitive identity of this relationship."""
        return (self.source.lower(), self.target.lower())


class Interaction(CamelModel):
    """A concrete event involving two or more characters."""

    characters: list[str] = Field(default_factory=list)
    description: str
    context: str = ""
    type: InteractionType = InteractionType.REFERENCE
    chunk_index: int | None = None

    @field_validator("characters", mode="before")
    @classmethod
    def _coerce_characters(cls, value: Any) -> list[str]:
        return dedupe_casefold(coerce_text_list(value))

    @field_validator("description", "context", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return coerce_text(value)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> InteractionType:
        return InteractionType.coerce(value)

    @model_validator(mode="after")
    def _require_participants(self) -> "Interaction":
        if not self.description:
            raise ValueError("interaction description is required")
        if len(self.characters) < 2:
            raise ValueError("an interaction needs at least two characters")
        return self


def validate_records(model: type[RecordT], items: Any) -> list[RecordT]:
    """Validate a list of raw dicts, dropping (and logging) the ones that fail."""
    if not isinstance(items, list):
        return []

    records = []
    for item in items:
        if not isinstance(item, dict):
            logger.debug(f"Skipping non-object {model.__name__} entry: {item!r}")
            continue
        try:
            records.append(model.model_validate(item))
        except ValidationError as e:
            logger.debug(f"Dropping invalid {model.__name__}: {e.error_count()} error(s)")
    return records


class RecordSet(CamelModel):
    """Characters, relationships and interactions held together."""

    characters: list[Character] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    interactions: list[Interaction] = Field(default_factory=list)

    @classmethod
    def from_raw(cls, data: Any, chunk_index: int | None = None):
        """Build from decoded JSON, coercing every malformed part to empty."""
        if not isinstance(data, dict):
            data = {}

        raw_interactions = data.get("interactions")
        if chunk_index is not None and isinstance(raw_interactions, list):
            raw_interactions = [
                {**item, "chunkIndex": chunk_index} if isinstance(item, dict) else item
                for item in raw_interactions
            ]

        return cls(
            characters=validate_records(Character, data.get("characters")),
            relationships=validate_records(Relationship, data.get("relationships")),
            interactions=validate_records(Interaction, raw_interactions),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.characters or self.relationships or self.interactions)


class ChunkExtraction(RecordSet):
    """Raw result of analyzing one chunk; consumed by the merge engine."""


class AnalysisState(RecordSet):
    """Cumulative knowledge base built up over a run."""


class AnalysisMeta(CamelModel):
    """Run metadata stamped onto every result."""

    consistency_key: str = ""
    chunks_processed: int = 0
    character_count: int = 0
    relationship_count: int = 0
    relationship_pairs_count: int = 0
    interactions_count: int = 0
    bidirectional_analysis: bool = True
    analysis_date: str = ""
    provider: str = ""

    @field_validator("consistency_key", "analysis_date", "provider", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return coerce_text(value)

    @field_validator(
        "chunks_processed",
        "character_count",
        "relationship_count",
        "relationship_pairs_count",
        "interactions_count",
        mode="before",
    )
    @classmethod
    def _coerce_counts(cls, value: Any) -> int:
        return coerce_count(value)

    @field_validator("bidirectional_analysis", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes")
        return bool(value)


class AnalysisResult(CamelModel):
    """Final output of one analysis run."""

    title: str = ""
    author: str = ""
    characters: list[Character] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    interactions: list[Interaction] = Field(default_factory=list)
    meta: AnalysisMeta = Field(default_factory=AnalysisMeta)

    def to_state(self) -> AnalysisState:
        return AnalysisState(
            characters=self.characters,
            relationships=self.relationships,
            interactions=self.interactions,
        )

    def to_document(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON document shape."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
