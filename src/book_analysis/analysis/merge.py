"""Merge engine: folds per-chunk extractions into the cumulative state.

All functions here are pure. Records are never mutated; every merge builds
new records with ``model_copy`` and returns new lists.

Identity rules:

- characters are keyed by case-insensitive canonical name, and a name that is
  a known alias resolves to the character that owns it
- relationships are keyed by the *ordered* (source, target) pair, so
  ``A -> B`` and ``B -> A`` are never merged
- interactions are keyed by their exact description
"""

import logging
from collections import Counter
from collections.abc import Iterable
from itertools import combinations

from book_analysis.data_models.entities import (
    AnalysisState,
    Character,
    ChunkExtraction,
    Interaction,
    Relationship,
    dedupe_casefold,
)

logger = logging.getLogger(__name__)


def join_phrases(existing: str, incoming: str) -> str:
    """Append ``incoming`` as a comma-joined phrase unless it is already there."""
    if not incoming:
        return existing
    if not existing:
        return incoming
    if incoming.lower() in existing.lower():
        return existing
    return f"{existing}, {incoming}"


def _appearance_update(
    existing: Character | Relationship,
    incoming: Character | Relationship | None = None,
    chunk_index: int | None = None,
) -> dict:
    appearances = set(existing.chunk_appearances)
    if incoming is not None:
        appearances.update(incoming.chunk_appearances)
    if chunk_index is not None:
        appearances.add(chunk_index)
    if not appearances:
        return {}
    ordered = sorted(appearances)
    return {
        "chunk_appearances": ordered,
        "first_appearance": ordered[0],
        "last_appearance": ordered[-1],
    }


def _find_character(
    characters: list[Character], incoming: Character
) -> tuple[int | None, bool]:
    """
    Locate the existing record ``incoming`` refers to.

    Returns the index (or None) and whether ``incoming`` should become the
    canonical identity. That happens when ``incoming`` lists an existing
    character's name as one of its own aliases, i.e. it claims to be the
    more formal name of the same person.
    """
    names = {c.name.lower(): i for i, c in enumerate(characters)}
    aliases: dict[str, int] = {}
    for i, character in enumerate(characters):
        for alias in character.aliases:
            aliases.setdefault(alias.lower(), i)

    key = incoming.name.lower()
    if key in names:
        return names[key], False
    if key in aliases:
        return aliases[key], False

    for alias in incoming.aliases:
        if alias.lower() in names:
            return names[alias.lower()], True
    for alias in incoming.aliases:
        if alias.lower() in aliases:
            return aliases[alias.lower()], False
    return None, False


def combine_characters(
    existing: Character,
    incoming: Character,
    chunk_index: int | None = None,
    promote: bool = False,
) -> Character:
    """
    Combine two records of the same character.

    Mentions add, importance takes the higher tier, aliases/roles union,
    actions append without exact duplicates and the first non-empty
    description is kept.
    """
    canonical = incoming.name if promote else existing.name

    aliases = dedupe_casefold(
        existing.aliases + [existing.name] + incoming.aliases + [incoming.name],
        exclude=canonical,
    )
    importance = (
        incoming.importance
        if incoming.importance.rank > existing.importance.rank
        else existing.importance
    )
    actions = list(existing.actions)
    for action in incoming.actions:
        if action not in actions:
            actions.append(action)

    return existing.model_copy(
        update={
            "name": canonical,
            "aliases": aliases,
            "mentions": existing.mentions + incoming.mentions,
            "importance": importance,
            "roles": dedupe_casefold(existing.roles + incoming.roles),
            "actions": actions,
            "description": existing.description or incoming.description,
            **_appearance_update(existing, incoming, chunk_index),
        }
    )


def merge_character(
    characters: list[Character], incoming: Character, chunk_index: int | None = None
) -> list[Character]:
    """Merge one character into the list, returning a new list."""
    index, promote = _find_character(characters, incoming)

    if index is None:
        record = incoming.model_copy(update=_appearance_update(incoming, None, chunk_index))
        return [*characters, record]

    existing = characters[index]
    if promote:
        logger.debug(f"'{incoming.name}' claims '{existing.name}' as an alias; renaming")
    merged = combine_characters(existing, incoming, chunk_index, promote=promote)
    return [*characters[:index], merged, *characters[index + 1 :]]


def combine_relationships(
    existing: Relationship, incoming: Relationship, chunk_index: int | None = None
) -> Relationship:
    """Combine two observations of the same directional relationship."""
    return existing.model_copy(
        update={
            "number_of_interactions": existing.number_of_interactions
            + incoming.number_of_interactions,
            "status": join_phrases(existing.status, incoming.status),
            "type": join_phrases(existing.type, incoming.type),
            "description": existing.description or incoming.description,
            "evidence": existing.evidence or incoming.evidence,
            **_appearance_update(existing, incoming, chunk_index),
        }
    )


def merge_relationship(
    relationships: list[Relationship],
    incoming: Relationship,
    chunk_index: int | None = None,
) -> list[Relationship]:
    """
    Merge one directional relationship into the list, returning a new list.

    Only the record with the same ordered (source, target) pair is touched.
    Self-relationships are dropped.
    """
    if incoming.source.lower() == incoming.target.lower():
        logger.debug(f"Dropping self-relationship for '{incoming.source}'")
        return relationships

    for index, existing in enumerate(relationships):
        if existing.key == incoming.key:
            merged = combine_relationships(existing, incoming, chunk_index)
            return [*relationships[:index], merged, *relationships[index + 1 :]]

    record = incoming.model_copy(update=_appearance_update(incoming, None, chunk_index))
    return [*relationships, record]


def merge_interaction(
    interactions: list[Interaction],
    incoming: Interaction,
    chunk_index: int | None = None,
) -> list[Interaction]:
    """Append an interaction unless one with the same description exists."""
    if any(existing.description == incoming.description for existing in interactions):
        return interactions

    if incoming.chunk_index is None and chunk_index is not None:
        incoming = incoming.model_copy(update={"chunk_index": chunk_index})
    return [*interactions, incoming]


def merge_extraction(
    state: AnalysisState, extraction: ChunkExtraction, chunk_index: int | None = None
) -> AnalysisState:
    """Fold one chunk's extraction into the state, returning a new state."""
    characters = state.characters
    for character in extraction.characters:
        characters = merge_character(characters, character, chunk_index)

    relationships = state.relationships
    for relationship in extraction.relationships:
        relationships = merge_relationship(relationships, relationship, chunk_index)

    interactions = state.interactions
    for interaction in extraction.interactions:
        interactions = merge_interaction(interactions, interaction, chunk_index)

    return AnalysisState(
        characters=characters, relationships=relationships, interactions=interactions
    )


def merge_chunk_results(extractions: Iterable[ChunkExtraction]) -> AnalysisState:
    """Fold an ordered sequence of chunk extractions from an empty state."""
    state = AnalysisState()
    for chunk_index, extraction in enumerate(extractions):
        state = merge_extraction(state, extraction, chunk_index)
    return finalize_arcs(state)


def reconcile_interaction_counts(state: AnalysisState) -> AnalysisState:
    """
    Recompute every relationship's ``number_of_interactions`` from interactions.

    Each interaction adds one to both directions of every pair of distinct
    characters in it. The result replaces whatever count the model reported;
    directions that have no relationship record are not created.
    """
    counts: Counter[tuple[str, str]] = Counter()
    for interaction in state.interactions:
        names = dedupe_casefold(interaction.characters)
        for first, second in combinations(names, 2):
            a, b = first.lower(), second.lower()
            counts[(a, b)] += 1
            counts[(b, a)] += 1

    relationships = [
        relationship.model_copy(
            update={"number_of_interactions": counts.get(relationship.key, 0)}
        )
        for relationship in state.relationships
    ]
    return state.model_copy(update={"relationships": relationships})


def _arc_fields(record: Character | Relationship, pattern_field: str) -> dict:
    if not record.chunk_appearances:
        return {}
    arc_span = record.chunk_appearances[-1] - record.chunk_appearances[0] + 1
    appearance_count = len(record.chunk_appearances)
    return {
        "arc_span": arc_span,
        "appearance_count": appearance_count,
        pattern_field: "continuous" if appearance_count == arc_span else "intermittent",
    }


def finalize_arcs(state: AnalysisState) -> AnalysisState:
    """Derive arc span and presence pattern from appearance tracking."""
    characters = [
        c.model_copy(update=_arc_fields(c, "presence_pattern")) for c in state.characters
    ]
    relationships = [
        r.model_copy(update=_arc_fields(r, "development_pattern"))
        for r in state.relationships
    ]
    return state.model_copy(
        update={"characters": characters, "relationships": relationships}
    )


def count_relationship_pairs(relationships: Iterable[Relationship]) -> int:
    """Number of unordered character pairs with a relationship in either direction."""
    return len({frozenset(relationship.key) for relationship in relationships})
