import json

import pytest

from book_analysis.llm.utils import (
    EMPTY_CHUNK_RESULT,
    EMPTY_INFERENCE_RESULT,
    decode_json,
    extract_json,
    truncate_text,
)


def test_fenced_block_is_extracted_verbatim():
    text = 'Here is the result:\n```json\n{"characters":[],"relationships":[]}\n```\nThanks!'
    assert extract_json(text) == '{"characters":[],"relationships":[]}'


def test_untagged_fence_and_later_valid_fence():
    text = "```\nnot json\n```\nthen\n```json\n{\"a\": 1}\n```"
    assert json.loads(extract_json(text)) == {"a": 1}


def test_brace_span_without_fence():
    assert extract_json('Result: {"a": {"b": 2}} -- done') == '{"a": {"b": 2}}'


def test_longest_parsable_object_wins():
    text = 'first {"a": 1} then {"b": 2, "c": 3} end'
    assert extract_json(text) == '{"b": 2, "c": 3}'


@pytest.mark.parametrize(
    "text",
    [
        "I could not find any characters in this passage.",
        '{"characters": [{"name": "Hamlet"',
        "[1, 2, 3]",
        "",
        None,
        42,
    ],
)
def test_unusable_output_returns_fallback(text):
    assert extract_json(text) == EMPTY_CHUNK_RESULT
    assert extract_json(text, EMPTY_INFERENCE_RESULT) == EMPTY_INFERENCE_RESULT


def test_decode_json_always_returns_a_dict():
    assert decode_json("garbage") == {"characters": [], "relationships": [], "interactions": []}
    assert decode_json("garbage", EMPTY_INFERENCE_RESULT) == {"newRelationships": []}
    assert decode_json('{"newRelationships": [{"source": "A"}]}') == {
        "newRelationships": [{"source": "A"}]
    }


def test_truncate_text():
    assert truncate_text("short", 10) == "short"
    assert truncate_text("abcdefghij", 4) == "abcd..."
