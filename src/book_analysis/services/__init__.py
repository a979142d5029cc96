"""Service layer for the analysis pipeline."""

from .analysis_service import AnalysisOptions, AnalysisService, CancellationToken
from .book_source_service import BookMetadata, BookSourceService
from .chunk_extractor import ChunkExtractor
from .refinement_service import RefinementService

__all__ = [
    "AnalysisService",
    "AnalysisOptions",
    "CancellationToken",
    "BookSourceService",
    "BookMetadata",
    "ChunkExtractor",
    "RefinementService",
]
