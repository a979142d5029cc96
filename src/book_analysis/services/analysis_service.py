"""Pipeline driver: segmentation, sequential extraction and merge, refinement."""

import asyncio
import logging
import time
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from book_analysis.analysis.canonicalize import canonicalize_state
from book_analysis.analysis.merge import (
    count_relationship_pairs,
    finalize_arcs,
    merge_extraction,
    reconcile_interaction_counts,
)
from book_analysis.config.analysis_config import AnalysisSettings, get_analysis_settings
from book_analysis.data_models.analysis_record import AnalysisRecord
from book_analysis.data_models.entities import AnalysisMeta, AnalysisResult, AnalysisState
from book_analysis.database.interfaces.analysis_repository_interface import (
    AnalysisRepository,
)
from book_analysis.llm.config import normalize_provider
from book_analysis.llm.interfaces.llm_interface import LLMInterface
from book_analysis.services.book_source_service import BookSourceService
from book_analysis.services.chunk_extractor import ChunkExtractor
from book_analysis.services.exceptions import (
    AnalysisCancelledError,
    AnalysisError,
    AnalysisPersistenceError,
    BookSourceError,
)
from book_analysis.services.refinement_service import RefinementService
from book_analysis.text_processing.text_processing import chunk_content

logger = logging.getLogger(__name__)


class CancellationToken:
    """Lets a caller stop a running analysis at its next suspension point."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise AnalysisCancelledError("Analysis was cancelled")

    async def sleep(self, seconds: float) -> None:
        """Wait ``seconds`` unless cancelled first; raises if cancelled."""
        self.raise_if_cancelled()
        if seconds > 0:
            try:
                await asyncio.wait_for(self._event.wait(), timeout=seconds)
            except asyncio.TimeoutError:
                pass
        self.raise_if_cancelled()


class AnalysisOptions(BaseModel):
    """Options for one run; unset values fall back to AnalysisSettings."""

    provider: str | None = None
    chunk_size: int | None = Field(default=None, gt=0)
    delay_between_chunks: int | None = Field(default=None, ge=0)  # milliseconds
    override_cache: bool = False
    consistency_key: str = Field(default_factory=lambda: str(int(time.time() * 1000)))


class AnalysisService:
    """
    Runs the full analysis of one book.

    Chunks are processed strictly in order: each chunk's prompt carries a
    summary of everything merged so far, so chunk N cannot start before
    chunk N-1 has been merged.
    """

    def __init__(
        self,
        llm: LLMInterface,
        settings: AnalysisSettings | None = None,
        repository: AnalysisRepository | None = None,
    ):
        """
        Args:
            llm: Completion client, already configured for one provider
            settings: Pipeline tunables; process settings if None
            repository: Store for results; runs are not persisted if None
        """
        self.llm = llm
        self.settings = settings or get_analysis_settings()
        self.repository = repository
        self.extractor = ChunkExtractor(llm, self.settings)
        self.refiner = RefinementService(llm, self.settings)

    async def analyze_book(
        self,
        content: str,
        title: str,
        author: str,
        options: AnalysisOptions | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AnalysisResult:
        """
        Analyze book text into characters, relationships and interactions.

        Args:
            content: Full book text
            title: Book title
            author: Book author
            options: Per-run options
            cancel_token: Optional token checked at every suspension point

        Returns:
            The final analysis result

        Raises:
            LLMValidationError: If options name an unknown provider; raised
                before any model call and not wrapped
            AnalysisCancelledError: If the token was cancelled
            AnalysisError: On any fatal failure, wrapping the cause
        """
        options = options or AnalysisOptions()
        if options.provider is not None:
            normalize_provider(options.provider)
        token = cancel_token or CancellationToken()

        try:
            state, chunk_count = await self._run(content, title, author, options, token)
        except AnalysisError:
            raise
        except Exception as e:
            logger.error(f"Analysis of '{title}' failed: {e}")
            raise AnalysisError(f"Failed to analyze book content: {e}", e) from e

        return self._build_result(state, title, author, chunk_count, options)

    async def _run(
        self,
        content: str,
        title: str,
        author: str,
        options: AnalysisOptions,
        token: CancellationToken,
    ) -> tuple[AnalysisState, int]:
        chunk_size = options.chunk_size or self.settings.chunk_size
        delay_ms = (
            options.delay_between_chunks
            if options.delay_between_chunks is not None
            else self.settings.delay_between_chunks_ms
        )

        chunks = chunk_content(content, chunk_size, self.settings.lookback_window)
        logger.info(f"Analyzing '{title}' by {author}: {len(chunks)} chunks")

        state = AnalysisState()
        for index, chunk in enumerate(chunks):
            token.raise_if_cancelled()
            logger.info(f"Processing chunk {index + 1}/{len(chunks)}")

            extraction = await self.extractor.extract(
                chunk, index, len(chunks), title, author, state
            )
            token.raise_if_cancelled()

            state = canonicalize_state(merge_extraction(state, extraction, index))
            logger.info(
                f"Chunk {index + 1}/{len(chunks)}: +{len(extraction.characters)} characters, "
                f"+{len(extraction.relationships)} relationships, "
                f"+{len(extraction.interactions)} interactions "
                f"(total {len(state.characters)}/{len(state.relationships)}/{len(state.interactions)})"
            )

            if index < len(chunks) - 1:
                await token.sleep(delay_ms / 1000)

        if state.characters:
            token.raise_if_cancelled()
            logger.info("Refining merged results")
            state = await self.refiner.run(state, title, author)
            token.raise_if_cancelled()
        else:
            logger.warning(f"No characters extracted from '{title}'; skipping refinement")

        state = reconcile_interaction_counts(finalize_arcs(state))
        return state, len(chunks)

    def _build_result(
        self,
        state: AnalysisState,
        title: str,
        author: str,
        chunk_count: int,
        options: AnalysisOptions,
    ) -> AnalysisResult:
        meta = AnalysisMeta(
            consistency_key=options.consistency_key,
            chunks_processed=chunk_count,
            character_count=len(state.characters),
            relationship_count=len(state.relationships),
            relationship_pairs_count=count_relationship_pairs(state.relationships),
            interactions_count=len(state.interactions),
            bidirectional_analysis=True,
            analysis_date=datetime.now(UTC).isoformat(),
            provider=self.llm.provider_name,
        )
        logger.info(
            f"Analysis of '{title}' complete: {meta.character_count} characters, "
            f"{meta.relationship_count} relationships, {meta.interactions_count} interactions"
        )
        return AnalysisResult(
            title=title,
            author=author,
            characters=state.characters,
            relationships=state.relationships,
            interactions=state.interactions,
            meta=meta,
        )

    def get_cached(self, book_id: str) -> AnalysisResult | None:
        """Return the stored result for a book, if any."""
        if self.repository is None:
            return None
        record = self.repository.get_by_book_id(book_id)
        return record.to_result() if record else None

    def save(self, book_id: str, result: AnalysisResult) -> None:
        """
        Persist a computed result.

        Raises:
            AnalysisPersistenceError: If the write fails; carries ``result``
        """
        if self.repository is None:
            return
        try:
            self.repository.upsert(AnalysisRecord.from_result(book_id, result))
        except Exception as e:
            logger.error(f"Failed to save analysis for book {book_id}: {e}")
            raise AnalysisPersistenceError(
                f"Failed to save analysis to database: {e}", result, e
            ) from e
        logger.info(f"Saved analysis for book {book_id}")

    async def analyze_book_by_id(
        self,
        book_id: str,
        source: BookSourceService,
        options: AnalysisOptions | None = None,
        cancel_token: CancellationToken | None = None,
        content: str | None = None,
        title: str | None = None,
        author: str | None = None,
    ) -> AnalysisResult:
        """
        Analyze a book by identifier, reusing a stored result when allowed.

        Text and metadata are fetched from ``source`` unless supplied. The
        result is persisted after it is computed; a failed write raises
        AnalysisPersistenceError with the result attached.

        Raises:
            BookSourceError: If text or metadata cannot be fetched
            AnalysisError: On any fatal analysis failure
        """
        options = options or AnalysisOptions()

        if not options.override_cache:
            cached = self.get_cached(book_id)
            if cached is not None:
                logger.info(f"Returning stored analysis for book {book_id}")
                return cached

        if content is None:
            content = await source.fetch_book_content(book_id)
        if title is None or author is None:
            try:
                metadata = await source.fetch_book_metadata(book_id)
            except BookSourceError as e:
                logger.warning(f"Using placeholder metadata for book {book_id}: {e}")
                title, author = title or f"Book {book_id}", author or "Unknown"
            else:
                title, author = title or metadata.title, author or metadata.author

        result = await self.analyze_book(content, title, author, options, cancel_token)
        self.save(book_id, result)
        return result
