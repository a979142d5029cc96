"""FastAPI application for the book character analysis service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import analysis, books

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # close the shared store only if a request opened it
    if analysis.get_repository.cache_info().currsize:
        analysis.get_repository().close()
        analysis.get_repository.cache_clear()
        logger.info("Analysis store closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Book Analysis API",
        description="Character, relationship and interaction graphs extracted from novels",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Frontend dev server
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[analysis.PERSISTENCE_ERROR_HEADER],
    )

    app.include_router(analysis.router, prefix="/api")
    app.include_router(books.router, prefix="/api")

    return app


app = create_app()


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "Book Analysis API is running"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("book_analysis.api.main:app", host="0.0.0.0", port=8000, reload=True)
