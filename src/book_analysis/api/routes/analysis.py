"""Analysis API routes: run, fetch, delete and list analyses."""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from book_analysis.api.models.api_models import (
    AnalysisListResponse,
    AnalysisRequest,
    AnalysisSummary,
    DeleteResponse,
)
from book_analysis.config.analysis_config import AnalysisSettings, get_analysis_settings
from book_analysis.data_models.entities import AnalysisResult
from book_analysis.database.exceptions import DatabaseError, ValidationError
from book_analysis.database.factory import create_analysis_repository
from book_analysis.database.interfaces import AnalysisRepository
from book_analysis.llm import LLMConfig, LLMValidationError, create_llm_provider
from book_analysis.services.analysis_service import AnalysisService
from book_analysis.services.book_source_service import BookSourceService
from book_analysis.services.exceptions import (
    AnalysisError,
    AnalysisPersistenceError,
    BookSourceError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analysis", tags=["analysis"])

PERSISTENCE_ERROR_HEADER = "X-Analysis-Persistence-Error"


# Cached so every request shares one store connection
@lru_cache
def get_repository() -> AnalysisRepository:
    """Get the configured analysis repository (cached)."""
    return create_analysis_repository()


def get_book_source() -> BookSourceService:
    return BookSourceService()


def get_llm_factory():
    """Callable that turns an LLMConfig into a completion client."""
    return create_llm_provider


@router.post(
    "/{book_id}", response_model=AnalysisResult, response_model_exclude_none=True
)
async def run_analysis(
    book_id: str,
    request: AnalysisRequest,
    response: Response,
    repository: AnalysisRepository = Depends(get_repository),
    source: BookSourceService = Depends(get_book_source),
    llm_factory=Depends(get_llm_factory),
    settings: AnalysisSettings = Depends(get_analysis_settings),
):
    """Analyze a book, returning the stored result unless overrideCache is set."""
    provider = request.provider or settings.default_provider
    try:
        llm = llm_factory(LLMConfig.from_environment(provider))
    except LLMValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    service = AnalysisService(llm, settings, repository)
    try:
        return await service.analyze_book_by_id(
            book_id,
            source,
            request.to_options(provider),
            content=request.content,
            title=request.title,
            author=request.author,
        )
    except AnalysisPersistenceError as e:
        # the analysis itself succeeded; hand it back and flag the failed write
        response.headers[PERSISTENCE_ERROR_HEADER] = str(e)
        return e.result
    except BookSourceError as e:
        logger.error(f"Failed to fetch book {book_id}: {e}")
        raise HTTPException(status_code=502, detail=str(e)) from e
    except LLMValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except AnalysisError as e:
        logger.error(f"Analysis failed for book {book_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.get(
    "/{book_id}", response_model=AnalysisResult, response_model_exclude_none=True
)
async def get_analysis(
    book_id: str, repository: AnalysisRepository = Depends(get_repository)
):
    """Get the stored analysis for a book."""
    try:
        record = repository.get_by_book_id(book_id)
    except DatabaseError as e:
        logger.error(f"Failed to get analysis for book {book_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve analysis") from e

    if record is None:
        raise HTTPException(status_code=404, detail=f"No analysis found for book {book_id}")
    return record.to_result()


@router.delete("/{book_id}", response_model=DeleteResponse)
async def delete_analysis(
    book_id: str, repository: AnalysisRepository = Depends(get_repository)
):
    """Delete the stored analysis for a book."""
    try:
        deleted = repository.delete(book_id)
    except DatabaseError as e:
        logger.error(f"Failed to delete analysis for book {book_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete analysis") from e

    if not deleted:
        raise HTTPException(status_code=404, detail=f"No analysis found for book {book_id}")
    return DeleteResponse(book_id=book_id, deleted=True)


@router.get("", response_model=AnalysisListResponse)
async def list_analyses(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: str = Query("desc", pattern="^(asc|desc)$"),
    repository: AnalysisRepository = Depends(get_repository),
):
    """List stored analyses, newest first by default."""
    try:
        result = repository.list_all(page=page, limit=limit, sort_order=sort)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except DatabaseError as e:
        logger.error(f"Failed to list analyses: {e}")
        raise HTTPException(status_code=500, detail="Failed to list analyses") from e

    return AnalysisListResponse(
        records=[AnalysisSummary.from_record(r) for r in result.records],
        pagination=result.pagination,
    )
