"""Prompt templates for the analysis pipeline.

Three prompts drive the pipeline: per-chunk extraction, whole-book
refinement and missing-relationship inference. Each asks for a single JSON
object; replies are decoded with ``book_analysis.llm.utils.extract_json``.
"""

from langchain_core.prompts import PromptTemplate

CHUNK_EXTRACTION_PROMPT = """You are a literary analysis expert analyzing text from "{title}" by {author}.

This is chunk {chunk_number} of {total_chunks}.

{context_summary}

CHARACTERS:
- Identify every distinct character who appears or is referred to in this chunk
- Name each character by their most complete, formal name (e.g. "King Claudius", not "the King" or "Claudius")
- List every other name, title or nickname used for them as aliases
- Count every reference to the character, including pronouns that clearly refer to them
- Describe who they are in this chunk: traits, motivations, decisions, development
- List their roles (familial, social, functional: "king", "uncle", "narrator")
- List the concrete actions they take in this chunk, in order

RELATIONSHIPS:
- Relationships are DIRECTIONAL. For a pair A and B produce one entry for how A sees and acts toward B, and a separate entry for how B sees and acts toward A
- TYPE is the structural connection only: "father-son", "king-subject", "rivals", "master-servant". Combine with " + " when several apply
- STATUS is the source's attitude toward the target: "distrustful", "admiring", "growing resentment"
- EVIDENCE quotes or paraphrases the passage that shows it
- Include relationships that are referenced or clearly implied, not only direct meetings

INTERACTIONS:
- Record each concrete event in this chunk that involves two or more characters
- "type" is one of: conversation, physical, observation, reference, joint-participation
- "description" says what happened in one sentence; "context" says where or why

Respond ONLY with a JSON object in this structure:
{{
  "characters": [
    {{
      "name": "Most complete formal name",
      "aliases": ["Other name", "Title"],
      "description": "Who this character is and what they do in this chunk",
      "importance": "major | supporting | minor",
      "mentions": 0,
      "roles": ["role"],
      "actions": ["action taken in this chunk"]
    }}
  ],
  "relationships": [
    {{
      "source": "Character A formal name",
      "target": "Character B formal name",
      "type": "structural relationship",
      "status": "A's attitude toward B",
      "description": "How A relates to B in this chunk",
      "evidence": "Passage showing it",
      "numberOfInteractions": 0
    }}
  ],
  "interactions": [
    {{
      "characters": ["Character A formal name", "Character B formal name"],
      "description": "What happened",
      "context": "Where or why it happened",
      "type": "conversation"
    }}
  ]
}}

Return ONLY the JSON object with no additional text."""


REFINEMENT_PROMPT = """You are a literary analysis expert finalizing an analysis of "{title}" by {author}.

You will receive character and relationship data merged from every part of the book. Refine it:

CHARACTERS:
- Rewrite each description as one coherent profile covering the character's whole arc; remove repetition
- Use the most complete formal name for each character and keep every other name as an alias
- Never merge two different people; never drop a character
- Set importance (major | supporting | minor) from mentions, arc span and narrative impact

RELATIONSHIPS:
- Keep relationships directional: (A -> B) and (B -> A) are separate entries with their own status
- TYPE holds only structural connections; STATUS holds only the source's attitude toward the target
- Merge duplicated phrasing in type and status
- For EVERY pair of major characters, make sure a relationship exists in BOTH directions when the narrative supports one

Respond ONLY with a JSON object in this structure:
{{
  "characters": [
    {{
      "name": "Most complete formal name",
      "aliases": ["Other name"],
      "description": "Refined profile",
      "importance": "major | supporting | minor",
      "mentions": 0,
      "roles": ["role"],
      "actions": ["action"]
    }}
  ],
  "relationships": [
    {{
      "source": "Character A formal name",
      "target": "Character B formal name",
      "type": "structural relationship",
      "status": "A's attitude toward B",
      "description": "How A relates to B across the book",
      "evidence": "Supporting passage",
      "numberOfInteractions": 0
    }}
  ]
}}

Return ONLY the JSON object with no additional text."""


RELATIONSHIP_INFERENCE_PROMPT = """You are a literary analysis expert analyzing "{title}" by {author}.

You will receive character and relationship data that has already been analyzed, followed by a list of
ordered pairs of major characters that have NO relationship in that direction yet.

For each listed pair (source -> target) decide whether the narrative supports a relationship in that
direction. If it does, describe it:
- TYPE: structural connection only (family, political, social, professional)
- STATUS: the source's perception of and attitude toward the target
- DESCRIPTION: how the source relates to the target in the story

Only return relationships for the listed pairs. Use the character names exactly as given.

Respond ONLY with a JSON object in this structure:
{{
  "newRelationships": [
    {{
      "source": "Character A formal name",
      "target": "Character B formal name",
      "type": "structural relationship",
      "status": "A's attitude toward B",
      "description": "How A relates to B",
      "evidence": "Narrative basis for the inference"
    }}
  ]
}}

If no relationship can be supported, return {{"newRelationships": []}}."""


_chunk_template = PromptTemplate.from_template(CHUNK_EXTRACTION_PROMPT)
_refinement_template = PromptTemplate.from_template(REFINEMENT_PROMPT)
_inference_template = PromptTemplate.from_template(RELATIONSHIP_INFERENCE_PROMPT)


def create_chunk_extraction_prompt(
    title: str,
    author: str,
    chunk_index: int,
    total_chunks: int,
    context_summary: str = "",
) -> str:
    """Render the system prompt for one chunk (``chunk_index`` is zero-based)."""
    return _chunk_template.format(
        title=title,
        author=author,
        chunk_number=chunk_index + 1,
        total_chunks=total_chunks,
        context_summary=context_summary,
    )


def create_refinement_prompt(title: str, author: str) -> str:
    return _refinement_template.format(title=title, author=author)


def create_relationship_inference_prompt(title: str, author: str) -> str:
    return _inference_template.format(title=title, author=author)
