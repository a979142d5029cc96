import pytest

from book_analysis.database.exceptions import CollectionError
from book_analysis.database.repositories import InMemoryAnalysisRepository
from book_analysis.llm.exceptions import LLMValidationError
from book_analysis.llm.providers import MockLLMProvider
from book_analysis.services import (
    AnalysisOptions,
    AnalysisService,
    BookSourceService,
    CancellationToken,
)
from book_analysis.services.exceptions import (
    AnalysisCancelledError,
    AnalysisError,
    AnalysisPersistenceError,
)

PARAGRAPH = "Hamlet spoke with the King on the battlements at night. " * 5
CONTENT = f"{PARAGRAPH}\n\n{PARAGRAPH}"


@pytest.fixture
def hamlet_replies(chunk_reply):
    first = chunk_reply(
        characters=[
            {"name": "Hamlet", "importance": "major", "mentions": 3},
            {"name": "Claudius", "aliases": ["the King"], "importance": "major", "mentions": 2},
        ],
        relationships=[
            {"source": "Hamlet", "target": "Claudius", "type": "nephew-uncle", "strength": 9},
            {"source": "Claudius", "target": "Hamlet", "type": "uncle-nephew", "strength": 9},
        ],
        interactions=[
            {"characters": ["Hamlet", "Claudius"], "description": "Hamlet confronts Claudius"},
        ],
    )
    second = chunk_reply(
        characters=[{"name": "King Claudius", "aliases": ["Claudius"], "mentions": 4}],
        interactions=[
            {
                "characters": ["Hamlet", "King Claudius"],
                "description": "The King watches the play",
                "type": "observation",
            },
        ],
    )
    # refinement reply is unusable, so the merged state is kept
    return [first, second, "I am unable to refine this."]


def _options(**kwargs) -> AnalysisOptions:
    return AnalysisOptions(chunk_size=300, delay_between_chunks=0, **kwargs)


@pytest.mark.asyncio
async def test_end_to_end_analysis(settings, hamlet_replies):
    llm = MockLLMProvider(responses=hamlet_replies)
    service = AnalysisService(llm, settings)

    result = await service.analyze_book(CONTENT, "Hamlet", "Shakespeare", _options())

    assert [c.name for c in result.characters] == ["Hamlet", "King Claudius"]
    claudius = result.characters[1]
    assert claudius.mentions == 6
    assert set(claudius.aliases) == {"Claudius", "the King"}
    assert claudius.chunk_appearances == [0, 1]

    # counts are recomputed from the two interactions, not taken from "strength"
    assert {r.key: r.number_of_interactions for r in result.relationships} == {
        ("hamlet", "king claudius"): 2,
        ("king claudius", "hamlet"): 2,
    }
    assert result.interactions[1].characters == ["Hamlet", "King Claudius"]

    meta = result.meta
    assert meta.chunks_processed == 2
    assert meta.character_count == 2
    assert meta.relationship_count == 2
    assert meta.relationship_pairs_count == 1
    assert meta.interactions_count == 2
    assert meta.bidirectional_analysis is True
    assert meta.provider == "mock"
    assert meta.consistency_key

    # two chunks and one refinement call; inference is skipped since no pair is missing
    assert len(llm.calls) == 3


@pytest.mark.asyncio
async def test_no_characters_skips_refinement(settings):
    llm = MockLLMProvider()
    result = await AnalysisService(llm, settings).analyze_book(CONTENT, "T", "A", _options())

    assert result.characters == []
    assert result.meta.chunks_processed == 2
    assert len(llm.calls) == 2


@pytest.mark.asyncio
async def test_empty_content_makes_no_calls(settings):
    llm = MockLLMProvider()
    result = await AnalysisService(llm, settings).analyze_book("   ", "T", "A", _options())

    assert result.meta.chunks_processed == 0
    assert llm.calls == []


@pytest.mark.asyncio
async def test_unknown_provider_fails_before_any_call(settings):
    llm = MockLLMProvider()
    with pytest.raises(LLMValidationError):
        await AnalysisService(llm, settings).analyze_book(
            CONTENT, "T", "A", _options(provider="carrier-pigeon")
        )
    assert llm.calls == []


@pytest.mark.asyncio
async def test_cancel_before_start(settings):
    llm = MockLLMProvider()
    token = CancellationToken()
    token.cancel()

    with pytest.raises(AnalysisCancelledError):
        await AnalysisService(llm, settings).analyze_book(CONTENT, "T", "A", _options(), token)
    assert llm.calls == []


@pytest.mark.asyncio
async def test_cancel_during_chunk_stops_the_run(settings, chunk_reply):
    token = CancellationToken()

    def cancel_then_reply(system_prompt, user_content):
        token.cancel()
        return chunk_reply()

    llm = MockLLMProvider(responses=[cancel_then_reply])
    with pytest.raises(AnalysisCancelledError):
        await AnalysisService(llm, settings).analyze_book(CONTENT, "T", "A", _options(), token)
    assert len(llm.calls) == 1


@pytest.mark.asyncio
async def test_cancellation_interrupts_the_delay():
    token = CancellationToken()
    token.cancel()
    with pytest.raises(AnalysisCancelledError):
        await token.sleep(60)


@pytest.mark.asyncio
async def test_unexpected_failure_is_wrapped(settings, hamlet_replies, monkeypatch):
    service = AnalysisService(MockLLMProvider(responses=hamlet_replies), settings)

    async def broken_run(state, title, author):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(service.refiner, "run", broken_run)

    with pytest.raises(AnalysisError) as exc_info:
        await service.analyze_book(CONTENT, "Hamlet", "Shakespeare", _options())
    assert isinstance(exc_info.value.original_error, RuntimeError)
    assert "Failed to analyze book content" in str(exc_info.value)


@pytest.mark.asyncio
async def test_stored_result_is_reused_unless_overridden(settings, repository, hamlet_replies):
    llm = MockLLMProvider(responses=hamlet_replies)
    service = AnalysisService(llm, settings, repository)
    source = BookSourceService()

    first = await service.analyze_book_by_id(
        "1524", source, _options(), content=CONTENT, title="Hamlet", author="Shakespeare"
    )
    calls_after_first = len(llm.calls)
    cached = await service.analyze_book_by_id(
        "1524", source, _options(), content=CONTENT, title="Hamlet", author="Shakespeare"
    )

    assert len(llm.calls) == calls_after_first
    assert cached.to_document() == first.to_document()
    assert repository.count() == 1

    await service.analyze_book_by_id(
        "1524",
        source,
        _options(override_cache=True),
        content=CONTENT,
        title="Hamlet",
        author="Shakespeare",
    )
    assert len(llm.calls) > calls_after_first


class _BrokenRepository(InMemoryAnalysisRepository):
    def upsert(self, record):
        raise CollectionError("store unavailable")


@pytest.mark.asyncio
async def test_persistence_failure_carries_the_result(settings, hamlet_replies):
    service = AnalysisService(
        MockLLMProvider(responses=hamlet_replies), settings, _BrokenRepository()
    )

    with pytest.raises(AnalysisPersistenceError) as exc_info:
        await service.analyze_book_by_id(
            "1524",
            BookSourceService(),
            _options(),
            content=CONTENT,
            title="Hamlet",
            author="Shakespeare",
        )

    assert [c.name for c in exc_info.value.result.characters] == ["Hamlet", "King Claudius"]


@pytest.mark.asyncio
async def test_interaction_naming_one_character_twice_does_not_abort(
    settings, repository, chunk_reply
):
    reply = chunk_reply(
        characters=[
            {"name": "Hamlet", "mentions": 2},
            {"name": "King Claudius", "aliases": ["Claudius"], "mentions": 3},
        ],
        interactions=[
            {"characters": ["Claudius", "King Claudius"], "description": "Claudius prays alone"},
            {"characters": ["Hamlet", "Claudius"], "description": "Hamlet spares the praying King"},
        ],
    )
    service = AnalysisService(
        MockLLMProvider(responses=[reply, "no refinement today"]), settings, repository
    )

    result = await service.analyze_book_by_id(
        "1524",
        BookSourceService(),
        _options(),
        content=PARAGRAPH,
        title="Hamlet",
        author="Shakespeare",
    )

    assert [i.description for i in result.interactions] == ["Hamlet spares the praying King"]
    assert result.interactions[0].characters == ["Hamlet", "King Claudius"]
    assert result.meta.interactions_count == 1
    stored = repository.get_by_book_id("1524")
    assert len(stored.interactions) == stored.meta.interactions_count == 1


@pytest.mark.asyncio
async def test_meta_names_the_provider_that_answered(settings):
    llm = MockLLMProvider()
    result = await AnalysisService(llm, settings).analyze_book(
        CONTENT, "T", "A", _options(provider="openai")
    )
    assert result.meta.provider == "mock"
