"""Context summary handed to the model with every chunk after the first."""

from book_analysis.config.analysis_config import AnalysisSettings
from book_analysis.data_models.entities import (
    AnalysisState,
    Character,
    Importance,
    Relationship,
)
from book_analysis.llm.utils import truncate_text


def significant_characters(
    state: AnalysisState, settings: AnalysisSettings
) -> list[Character]:
    """Frequently mentioned or major/supporting characters, capped in count."""
    selected = [
        character
        for character in state.characters
        if character.mentions > settings.significant_mention_threshold
        or character.importance in (Importance.MAJOR, Importance.SUPPORTING)
    ]
    return selected[: settings.max_significant_characters]


def significant_relationships(
    state: AnalysisState, settings: AnalysisSettings
) -> list[Relationship]:
    selected = [
        relationship
        for relationship in state.relationships
        if relationship.number_of_interactions > settings.significant_strength_threshold
    ]
    return selected[: settings.max_significant_relationships]


def _format_character(character: Character, settings: AnalysisSettings) -> str:
    aliases = f" ({', '.join(character.aliases)})" if character.aliases else ""
    description = truncate_text(character.description, settings.description_preview_chars)
    return f"- {character.name}{aliases}: {description}"


def _format_relationship(relationship: Relationship, settings: AnalysisSettings) -> str:
    evidence = (
        truncate_text(relationship.evidence, settings.evidence_preview_chars)
        if relationship.evidence
        else "No evidence"
    )
    return (
        f"- {relationship.source} -> {relationship.target}: "
        f"{relationship.type} ({relationship.status}) - {evidence}"
    )


def build_context_summary(
    state: AnalysisState | None, chunk_index: int, settings: AnalysisSettings
) -> str:
    """
    Summarize what earlier chunks established, for the next chunk's prompt.

    Only the most significant characters and relationships are included so
    the prompt stays bounded no matter how far into the book the run is.

    Args:
        state: Cumulative state so far
        chunk_index: Zero-based index of the chunk about to be analyzed
        settings: Thresholds and caps

    Returns:
        The summary text, or an empty string for the first chunk
    """
    if state is None or chunk_index <= 0:
        return ""

    characters = significant_characters(state, settings)
    relationships = significant_relationships(state, settings)
    if not characters and not relationships:
        return ""

    character_lines = "\n".join(_format_character(c, settings) for c in characters)
    relationship_lines = "\n".join(
        _format_relationship(r, settings) for r in relationships
    )

    return f"""CONTEXT FROM PREVIOUS CHUNKS:

CHARACTERS:
{character_lines or "- none yet"}

RELATIONSHIPS:
{relationship_lines or "- none yet"}

Use this context to follow continuing character arcs and developing relationships. Reuse the names above for
characters you recognize. When this chunk extends or contradicts what is known, add the new information rather
than repeating the old."""
