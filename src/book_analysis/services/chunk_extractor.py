"""Per-chunk extraction: one model call per chunk, decoded and validated."""

import logging

from book_analysis.analysis.context import build_context_summary
from book_analysis.analysis.prompts import create_chunk_extraction_prompt
from book_analysis.config.analysis_config import AnalysisSettings
from book_analysis.data_models.entities import AnalysisState, ChunkExtraction
from book_analysis.llm.interfaces.llm_interface import LLMInterface
from book_analysis.llm.utils import EMPTY_CHUNK_RESULT, decode_json

logger = logging.getLogger(__name__)


class ChunkExtractor:
    """Turns one chunk of text into a ChunkExtraction.

    Failures are absorbed: a failed call or an unusable reply yields an empty
    extraction and the run carries on with the next chunk.
    """

    def __init__(self, llm: LLMInterface, settings: AnalysisSettings):
        self.llm = llm
        self.settings = settings

    async def extract(
        self,
        chunk: str,
        chunk_index: int,
        total_chunks: int,
        title: str,
        author: str,
        state: AnalysisState | None = None,
    ) -> ChunkExtraction:
        """
        Analyze one chunk in the context of what earlier chunks established.

        Args:
            chunk: The chunk text
            chunk_index: Zero-based chunk index
            total_chunks: Number of chunks in the run
            title: Book title
            author: Book author
            state: Cumulative state so far

        Returns:
            The validated extraction, empty on any failure
        """
        context_summary = build_context_summary(state, chunk_index, self.settings)
        system_prompt = create_chunk_extraction_prompt(
            title, author, chunk_index, total_chunks, context_summary
        )

        try:
            content = await self.llm.generate_completion(
                system_prompt, chunk, max_tokens=self.settings.chunk_max_tokens
            )
        except Exception as e:
            logger.warning(
                f"Error processing chunk {chunk_index + 1}/{total_chunks}: {e}"
            )
            return ChunkExtraction()

        extraction = ChunkExtraction.from_raw(
            decode_json(content, EMPTY_CHUNK_RESULT), chunk_index=chunk_index
        )
        if extraction.is_empty:
            logger.warning(
                f"Chunk {chunk_index + 1}/{total_chunks} produced no usable records"
            )
        return extraction
