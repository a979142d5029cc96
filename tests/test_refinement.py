import json

import pytest

from book_analysis.config.analysis_config import AnalysisSettings
from book_analysis.data_models.entities import (
    AnalysisState,
    Character,
    Importance,
    Interaction,
    Relationship,
)
from book_analysis.llm.providers import MockLLMProvider
from book_analysis.services.refinement_service import (
    RefinementService,
    missing_major_pairs,
    serialize_state_for_prompt,
)


def _state() -> AnalysisState:
    return AnalysisState(
        characters=[
            Character(
                name="Pip",
                importance=Importance.MAJOR,
                mentions=12,
                description="an orphan",
                chunk_appearances=[0, 1],
            ),
            Character(name="Estella", importance=Importance.MAJOR, mentions=6),
            Character(name="Joe Gargery", aliases=["Joe"], mentions=4),
        ],
        relationships=[
            Relationship(source="Pip", target="Estella", number_of_interactions=3),
        ],
        interactions=[
            Interaction(characters=["Pip", "Estella"], description="Cards at Satis House", chunk_index=1),
        ],
    )


def test_prompt_payload_omits_interactions_and_tracking():
    payload = json.loads(serialize_state_for_prompt(_state()))

    assert set(payload) == {"characters", "relationships"}
    assert "chunkAppearances" not in payload["characters"][0]
    assert payload["relationships"][0]["numberOfInteractions"] == 3


def test_missing_major_pairs_are_directional():
    assert missing_major_pairs(_state()) == [("Estella", "Pip")]


@pytest.mark.asyncio
async def test_refine_keeps_state_when_call_fails(settings):
    state = _state()
    service = RefinementService(MockLLMProvider(responses=[RuntimeError("timeout")]), settings)
    assert await service.refine(state, "Great Expectations", "Dickens") is state


@pytest.mark.asyncio
async def test_refine_keeps_state_when_reply_has_no_characters(settings):
    state = _state()
    service = RefinementService(MockLLMProvider(responses=["no json here"]), settings)
    assert await service.refine(state, "Great Expectations", "Dickens") is state


@pytest.mark.asyncio
async def test_refine_applies_wording_but_keeps_counts_and_interactions(settings):
    reply = json.dumps(
        {
            "characters": [
                {
                    "name": "Philip Pirrip",
                    "aliases": ["Pip"],
                    "description": "An orphan raised by his sister",
                    "importance": "major",
                    "mentions": 1,
                }
            ],
            "relationships": [
                {"source": "Pip", "target": "Estella", "status": "infatuated", "strength": 99}
            ],
            "interactions": [],
        }
    )
    service = RefinementService(MockLLMProvider(responses=[reply]), settings)

    refined = await service.refine(_state(), "Great Expectations", "Dickens")

    names = [c.name for c in refined.characters]
    assert names == ["Philip Pirrip", "Estella", "Joe Gargery"]
    pip = refined.characters[0]
    assert pip.description == "An orphan raised by his sister"
    assert pip.mentions == 12
    assert "Pip" in pip.aliases
    assert pip.chunk_appearances == [0, 1]
    assert refined.relationships[0].status == "infatuated"
    assert refined.relationships[0].number_of_interactions == 3
    assert refined.interactions == _state().interactions


@pytest.mark.asyncio
async def test_inference_skipped_when_no_pair_is_missing(settings):
    state = _state().model_copy(
        update={
            "relationships": [
                Relationship(source="Pip", target="Estella"),
                Relationship(source="Estella", target="Pip"),
            ]
        }
    )
    llm = MockLLMProvider()

    assert await RefinementService(llm, settings).infer_relationships(state, "T", "A") is state
    assert llm.calls == []


@pytest.mark.asyncio
async def test_inference_adds_missing_direction(settings):
    reply = json.dumps(
        {
            "newRelationships": [
                {"source": "Estella", "target": "Pip", "type": "acquaintances", "status": "disdainful"},
                {"source": "Estella", "target": "Estella"},
            ]
        }
    )
    llm = MockLLMProvider(responses=[reply])

    state = await RefinementService(llm, settings).infer_relationships(_state(), "T", "A")

    assert {r.key for r in state.relationships} == {("pip", "estella"), ("estella", "pip")}
    assert "- Estella -> Pip" in llm.calls[0]["user_content"]
    assert llm.calls[0]["max_tokens"] == settings.inference_max_tokens


@pytest.mark.asyncio
async def test_run_respects_enable_flags():
    settings = AnalysisSettings(enable_refinement=False, enable_inference=False)
    llm = MockLLMProvider()

    state = await RefinementService(llm, settings).run(_state(), "T", "A")

    assert llm.calls == []
    assert [c.name for c in state.characters] == ["Pip", "Estella", "Joe Gargery"]


@pytest.mark.asyncio
async def test_refine_keeps_importance_the_reply_leaves_out(settings):
    reply = json.dumps(
        {
            "characters": [
                {"name": "Pip", "description": "An orphan with great expectations"},
                {"name": "Estella", "description": "Miss Havisham's ward", "importance": None},
                {"name": "Joe Gargery", "importance": "supporting"},
            ],
            "relationships": [],
        }
    )
    service = RefinementService(MockLLMProvider(responses=[reply]), settings)

    refined = await service.refine(_state(), "Great Expectations", "Dickens")

    importance = {c.name: c.importance for c in refined.characters}
    assert importance["Pip"] == Importance.MAJOR
    assert importance["Joe Gargery"] == Importance.SUPPORTING
    assert refined.characters[0].description == "An orphan with great expectations"
    # major pairs still drive inference after refinement
    assert missing_major_pairs(refined) == [("Estella", "Pip")]
