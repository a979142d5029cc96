"""Post-merge refinement and missing-relationship inference.

Both passes send the merged state (never the interactions) to the model and
fall back to the pre-call state on any failure. Interactions are restored
verbatim afterwards since they carry chunk provenance the model must not
rewrite.
"""

import json
import logging

from book_analysis.analysis.canonicalize import build_name_map, canonicalize_state
from book_analysis.analysis.merge import merge_character, merge_relationship
from book_analysis.analysis.prompts import (
    create_refinement_prompt,
    create_relationship_inference_prompt,
)
from book_analysis.config.analysis_config import AnalysisSettings
from book_analysis.data_models.entities import (
    AnalysisState,
    Character,
    ChunkExtraction,
    Importance,
    Relationship,
    dedupe_casefold,
    validate_records,
)
from book_analysis.llm.interfaces.llm_interface import LLMInterface
from book_analysis.llm.utils import (
    EMPTY_CHUNK_RESULT,
    EMPTY_INFERENCE_RESULT,
    decode_json,
)

logger = logging.getLogger(__name__)

_TRACKING_FIELDS = {
    "first_appearance",
    "last_appearance",
    "chunk_appearances",
    "arc_span",
    "appearance_count",
    "presence_pattern",
    "development_pattern",
}


def serialize_state_for_prompt(state: AnalysisState) -> str:
    """JSON of characters and relationships, without interactions or tracking."""
    payload = {
        "characters": [
            c.model_dump(by_alias=True, mode="json", exclude=_TRACKING_FIELDS)
            for c in state.characters
        ],
        "relationships": [
            r.model_dump(by_alias=True, mode="json", exclude=_TRACKING_FIELDS)
            for r in state.relationships
        ],
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def missing_major_pairs(state: AnalysisState) -> list[tuple[str, str]]:
    """Ordered pairs of major characters with no relationship in that direction."""
    majors = [c.name for c in state.characters if c.importance == Importance.MAJOR]
    existing = {relationship.key for relationship in state.relationships}
    return [
        (source, target)
        for source in majors
        for target in majors
        if source.lower() != target.lower()
        and (source.lower(), target.lower()) not in existing
    ]


def _apply_refined_character(original: Character, refined: Character) -> Character:
    """Take the model's wording while keeping identity, counts and provenance."""
    actions = list(original.actions)
    for action in refined.actions:
        if action not in actions:
            actions.append(action)
    return original.model_copy(
        update={
            "name": refined.name,
            "aliases": dedupe_casefold(
                original.aliases + [original.name] + refined.aliases,
                exclude=refined.name,
            ),
            "description": refined.description or original.description,
            # a missing or unreadable importance coerces to minor; never downgrade
            "importance": max(
                original.importance, refined.importance, key=lambda i: i.rank
            ),
            "roles": dedupe_casefold(original.roles + refined.roles),
            "actions": actions,
        }
    )


def _apply_refined_relationship(
    original: Relationship, refined: Relationship
) -> Relationship:
    return original.model_copy(
        update={
            "type": refined.type or original.type,
            "status": refined.status or original.status,
            "description": refined.description or original.description,
            "evidence": refined.evidence or original.evidence,
        }
    )


class RefinementService:
    """Runs the whole-book refinement and inference passes."""

    def __init__(self, llm: LLMInterface, settings: AnalysisSettings):
        self.llm = llm
        self.settings = settings

    async def refine(self, state: AnalysisState, title: str, author: str) -> AnalysisState:
        """
        Ask the model to clean up descriptions and naming across the book.

        Returns the pre-call state unchanged if the call fails or the reply
        contains no characters.
        """
        system_prompt = create_refinement_prompt(title, author)
        user_content = (
            f'Here are the merged results for "{title}" by {author}. '
            f"Refine them according to the guidelines:\n\n{serialize_state_for_prompt(state)}"
        )

        try:
            content = await self.llm.generate_completion(
                system_prompt, user_content, max_tokens=self.settings.refinement_max_tokens
            )
        except Exception as e:
            logger.warning(f"Error in final refinement, keeping merged results: {e}")
            return state

        refined = ChunkExtraction.from_raw(decode_json(content, EMPTY_CHUNK_RESULT))
        if not refined.characters:
            logger.warning("Refinement returned no characters, keeping merged results")
            return state

        return self._merge_refined(state, refined)

    def _merge_refined(self, state: AnalysisState, refined: ChunkExtraction) -> AnalysisState:
        name_map = build_name_map(state.characters)
        by_name = {c.name: c for c in state.characters}

        characters: list[Character] = []
        matched: set[str] = set()
        for candidate in refined.characters:
            original_name = name_map.get(candidate.name.lower())
            if original_name is None:
                for alias in candidate.aliases:
                    original_name = name_map.get(alias.lower())
                    if original_name is not None:
                        break
            if original_name is not None and original_name not in matched:
                matched.add(original_name)
                candidate = _apply_refined_character(by_name[original_name], candidate)
            characters = merge_character(characters, candidate)

        # characters the model left out are kept as they were
        for original in state.characters:
            if original.name not in matched:
                characters = merge_character(characters, original)

        relationships = list(state.relationships)
        index = {r.key: i for i, r in enumerate(relationships)}
        for candidate in refined.relationships:
            if candidate.key in index:
                i = index[candidate.key]
                relationships[i] = _apply_refined_relationship(relationships[i], candidate)
            else:
                relationships = merge_relationship(relationships, candidate)
                index = {r.key: i for i, r in enumerate(relationships)}

        logger.info(
            f"Refinement produced {len(characters)} characters and "
            f"{len(relationships)} relationships"
        )
        return AnalysisState(
            characters=characters,
            relationships=relationships,
            interactions=state.interactions,
        )

    async def infer_relationships(
        self, state: AnalysisState, title: str, author: str
    ) -> AnalysisState:
        """
        Ask the model for relationships between major characters that lack one.

        Skipped when no ordered major pair is missing. Returns the pre-call
        state unchanged on failure.
        """
        missing = missing_major_pairs(state)
        if not missing:
            logger.info("No missing major-character relationships to infer")
            return state

        pair_lines = "\n".join(f"- {source} -> {target}" for source, target in missing)
        system_prompt = create_relationship_inference_prompt(title, author)
        user_content = (
            f'Here are the current analysis results for "{title}" by {author}:\n\n'
            f"{serialize_state_for_prompt(state)}\n\n"
            f"Major character pairs with no relationship in this direction:\n{pair_lines}"
        )

        try:
            content = await self.llm.generate_completion(
                system_prompt, user_content, max_tokens=self.settings.inference_max_tokens
            )
        except Exception as e:
            logger.warning(f"Error in relationship inference, keeping current results: {e}")
            return state

        decoded = decode_json(content, EMPTY_INFERENCE_RESULT)
        inferred = validate_records(Relationship, decoded.get("newRelationships"))
        logger.info(f"Identified {len(inferred)} new relationships")

        relationships = state.relationships
        for relationship in inferred:
            relationships = merge_relationship(relationships, relationship)
        return state.model_copy(update={"relationships": relationships})

    async def run(self, state: AnalysisState, title: str, author: str) -> AnalysisState:
        """Refine, then infer, canonicalizing after each model pass."""
        if self.settings.enable_refinement:
            state = canonicalize_state(await self.refine(state, title, author))
        if self.settings.enable_inference:
            state = canonicalize_state(await self.infer_relationships(state, title, author))
        return state
