"""Book API routes for reading source text and catalog metadata."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from book_analysis.api.models.api_models import BookContentResponse, BookMetadataResponse
from book_analysis.api.routes.analysis import get_book_source
from book_analysis.services.book_source_service import BookSourceService
from book_analysis.services.exceptions import BookSourceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["books"])


@router.get("/{book_id}/content", response_model=BookContentResponse)
async def get_book_content(
    book_id: str, source: BookSourceService = Depends(get_book_source)
):
    """Get the full plain text of a book."""
    try:
        content = await source.fetch_book_content(book_id)
    except BookSourceError as e:
        logger.error(f"Failed to get content for book {book_id}: {e}")
        raise HTTPException(status_code=502, detail=str(e)) from e

    return BookContentResponse(book_id=book_id, content=content, length=len(content))


@router.get("/{book_id}/metadata", response_model=BookMetadataResponse)
async def get_book_metadata(
    book_id: str, source: BookSourceService = Depends(get_book_source)
):
    """Get the title and author of a book."""
    try:
        metadata = await source.fetch_book_metadata(book_id)
    except BookSourceError as e:
        logger.error(f"Failed to get metadata for book {book_id}: {e}")
        raise HTTPException(status_code=502, detail=str(e)) from e

    return BookMetadataResponse(
        book_id=book_id, title=metadata.title, author=metadata.author
    )
