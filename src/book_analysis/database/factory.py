"""Build the configured analysis repository."""

import logging

from .config.database_config import (
    StoreBackend,
    WeaviateConfig,
    store_backend_from_environment,
)
from .interfaces.analysis_repository_interface import AnalysisRepository
from .repositories.memory_repository import InMemoryAnalysisRepository
from .repositories.weaviate_repository import WeaviateAnalysisRepository

logger = logging.getLogger(__name__)


def create_analysis_repository(
    backend: StoreBackend | None = None, config: WeaviateConfig | None = None
) -> AnalysisRepository:
    """
    Create the repository selected by ``ANALYSIS_STORE`` (or ``backend``).

    Args:
        backend: Override the backend from environment
        config: Weaviate configuration; loaded from environment if None

    Returns:
        An AnalysisRepository implementation
    """
    backend = backend or store_backend_from_environment()
    if backend is StoreBackend.MEMORY:
        logger.info("Using in-memory analysis store")
        return InMemoryAnalysisRepository()

    config = config or WeaviateConfig.from_environment()
    logger.info(f"Using Weaviate analysis store at {config.connection_string}")
    return WeaviateAnalysisRepository(config)
