"""Utility functions for LLM operations."""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

# Returned when nothing in a reply parses; shaped like the expected payload
EMPTY_CHUNK_RESULT = '{"characters":[],"relationships":[],"interactions":[]}'
EMPTY_INFERENCE_RESULT = '{"newRelationships":[]}'

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_BRACE_SPAN = re.compile(r"\{[\s\S]*?\}")


def _parses_as_object(candidate: str) -> bool:
    try:
        return isinstance(json.loads(candidate), dict)
    except (ValueError, RecursionError):
        return False


def extract_json(text: Any, fallback: str = EMPTY_CHUNK_RESULT) -> str:
    """
    Pull a JSON object out of free-form model output.

    Tried in order, first success wins:

    1. a fenced code block (``json`` tag optional) whose body parses
    2. the span from the first ``{`` to the last ``}``
    3. every non-greedy ``{...}`` substring; the longest one that parses
    4. ``fallback``

    Never raises. A candidate only counts if it decodes to a JSON object.

    Args:
        text: Raw model reply
        fallback: Literal returned when nothing parses

    Returns:
        A string that ``json.loads`` accepts
    """
    if not isinstance(text, str) or not text.strip():
        return fallback

    for match in _FENCED_BLOCK.finditer(text):
        candidate = match.group(1).strip()
        if _parses_as_object(candidate):
            return candidate

    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidate = text[start : end + 1]
        if _parses_as_object(candidate):
            return candidate

    longest = ""
    for match in _BRACE_SPAN.finditer(text):
        candidate = match.group(0)
        if len(candidate) > len(longest) and _parses_as_object(candidate):
            longest = candidate
    if longest:
        return longest

    logger.warning(f"No JSON object found in model output ({len(text)} chars); using fallback")
    return fallback


def decode_json(text: Any, fallback: str = EMPTY_CHUNK_RESULT) -> dict[str, Any]:
    """Decode model output to a dict via ``extract_json``."""
    return json.loads(extract_json(text, fallback))


def estimate_token_count(text: str) -> int:
    """
    Estimate token count for text (rough approximation).

    Args:
        text: Text to estimate tokens for

    Returns:
        Estimated token count
    """
    # Rough approximation: 1 token ≈ 4 characters for English text
    return len(text) // 4


def truncate_text(text: str, max_chars: int) -> str:
    """Cut ``text`` to ``max_chars`` characters, marking the cut with ``...``."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."
