"""Canonicalizer: rewrites every name reference to its canonical form.

Safe to run any number of times; a second pass over its own output changes
nothing. It runs after every chunk merge and again after refinement, since
the model is free to introduce new spellings at any point.
"""

import logging
import re

from book_analysis.analysis.merge import merge_character, merge_relationship
from book_analysis.data_models.entities import (
    AnalysisState,
    Character,
    Interaction,
    Relationship,
    dedupe_casefold,
)

logger = logging.getLogger(__name__)

_WORD = re.compile(r"[\w'-]+")


def _collapse_characters(characters: list[Character]) -> list[Character]:
    # Re-folding merges any record whose name or alias collides with an
    # earlier one; a merge can expose a new collision, so repeat until stable.
    while True:
        folded: list[Character] = []
        for character in characters:
            folded = merge_character(folded, character)
        if len(folded) == len(characters):
            return folded
        characters = folded


def build_name_map(characters: list[Character]) -> dict[str, str]:
    """
    Map every lower-cased name and alias to its canonical name.

    Primary names take precedence over aliases.
    """
    name_map: dict[str, str] = {}
    for character in characters:
        name_map.setdefault(character.name.lower(), character.name)
    for character in characters:
        for alias in character.aliases:
            name_map.setdefault(alias.lower(), character.name)
    return name_map


def _tokens(name: str) -> set[str]:
    return {token.lower() for token in _WORD.findall(name)}


def _resolve_variant(name: str, characters: list[Character]) -> str | None:
    """Resolve an unknown spelling that names exactly one character's name words."""
    tokens = _tokens(name)
    if not tokens:
        return None
    matches = [c.name for c in characters if tokens <= _tokens(c.name)]
    return matches[0] if len(matches) == 1 else None


def _fold_variants(
    state: AnalysisState, characters: list[Character], name_map: dict[str, str]
) -> list[Character]:
    """Add unresolved but unambiguous spellings on records to the owner's aliases."""
    referenced = [name for r in state.relationships for name in (r.source, r.target)]
    referenced += [name for i in state.interactions for name in i.characters]

    variants: dict[str, list[str]] = {}
    for name in referenced:
        if name.lower() in name_map:
            continue
        canonical = _resolve_variant(name, characters)
        if canonical is not None:
            variants.setdefault(canonical, []).append(name)
            name_map[name.lower()] = canonical

    if not variants:
        return characters

    for canonical, names in variants.items():
        logger.debug(f"Folding {names} into aliases of '{canonical}'")
    return [
        c.model_copy(
            update={"aliases": dedupe_casefold(c.aliases + variants[c.name], exclude=c.name)}
        )
        if c.name in variants
        else c
        for c in characters
    ]


def _canonical_relationships(
    relationships: list[Relationship], name_map: dict[str, str]
) -> list[Relationship]:
    merged: list[Relationship] = []
    for relationship in relationships:
        rewritten = relationship.model_copy(
            update={
                "source": name_map.get(relationship.source.lower(), relationship.source),
                "target": name_map.get(relationship.target.lower(), relationship.target),
            }
        )
        merged = merge_relationship(merged, rewritten)
    return merged


def _canonical_interactions(
    interactions: list[Interaction], name_map: dict[str, str]
) -> list[Interaction]:
    rewritten: list[Interaction] = []
    for interaction in interactions:
        characters = dedupe_casefold(
            [name_map.get(name.lower(), name) for name in interaction.characters]
        )
        # a name and its alias on the same interaction leave one participant
        if len(characters) < 2:
            logger.debug(
                f"Dropping interaction '{interaction.description}': "
                f"{interaction.characters} name a single character"
            )
            continue
        rewritten.append(interaction.model_copy(update={"characters": characters}))
    return rewritten


def canonicalize_state(state: AnalysisState) -> AnalysisState:
    """
    Bring every name reference in the state to canonical form.

    1. collapse characters that share a name or alias
    2. build the name -> canonical map
    3. fold unambiguous unknown spellings used on relationships and
       interactions into the matching character's aliases
    4. rewrite relationship ends and interaction participants, merging
       relationships that now share the same ordered pair, dropping ones
       that became self-relationships and interactions left with a single
       participant

    Args:
        state: The state to canonicalize

    Returns:
        A new, canonical state
    """
    characters = _collapse_characters(state.characters)
    name_map = build_name_map(characters)
    characters = _fold_variants(state, characters, name_map)

    return AnalysisState(
        characters=characters,
        relationships=_canonical_relationships(state.relationships, name_map),
        interactions=_canonical_interactions(state.interactions, name_map),
    )
