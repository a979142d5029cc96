import pytest

from book_analysis.data_models.entities import AnalysisState, Character, Importance
from book_analysis.llm.providers import MockLLMProvider
from book_analysis.services.chunk_extractor import ChunkExtractor


@pytest.mark.asyncio
async def test_extracts_and_stamps_chunk_index(settings, chunk_reply):
    llm = MockLLMProvider(
        responses=[
            chunk_reply(
                characters=[{"name": "Jane Eyre", "mentions": 4, "importance": "major"}],
                relationships=[{"source": "Jane Eyre", "target": "Mrs Reed", "strength": 2}],
                interactions=[
                    {
                        "characters": ["Jane Eyre", "Mrs Reed"],
                        "description": "Jane is locked in the red room",
                        "type": "physical",
                    }
                ],
            )
        ]
    )
    extractor = ChunkExtractor(llm, settings)

    extraction = await extractor.extract("Some text.", 1, 3, "Jane Eyre", "Charlotte Bronte")

    assert [c.name for c in extraction.characters] == ["Jane Eyre"]
    assert extraction.relationships[0].number_of_interactions == 2
    assert extraction.interactions[0].chunk_index == 1
    assert "This is chunk 2 of 3" in llm.calls[0]["system_prompt"]
    assert llm.calls[0]["user_content"] == "Some text."
    assert llm.calls[0]["max_tokens"] == settings.chunk_max_tokens


@pytest.mark.asyncio
async def test_failed_call_yields_empty_extraction(settings):
    llm = MockLLMProvider(responses=[RuntimeError("connection reset")])
    extraction = await ChunkExtractor(llm, settings).extract("text", 0, 1, "T", "A")
    assert extraction.is_empty


@pytest.mark.asyncio
async def test_unparsable_reply_yields_empty_extraction(settings):
    llm = MockLLMProvider(responses=["Sorry, I cannot help with that."])
    extraction = await ChunkExtractor(llm, settings).extract("text", 0, 1, "T", "A")
    assert extraction.is_empty


@pytest.mark.asyncio
async def test_later_chunks_carry_context(settings):
    state = AnalysisState(characters=[Character(name="Rochester", importance=Importance.MAJOR)])
    llm = MockLLMProvider()

    await ChunkExtractor(llm, settings).extract("text", 0, 2, "T", "A", state)
    await ChunkExtractor(llm, settings).extract("text", 1, 2, "T", "A", state)

    assert "CONTEXT FROM PREVIOUS CHUNKS" not in llm.calls[0]["system_prompt"]
    assert "- Rochester: " in llm.calls[1]["system_prompt"]
