"""Repository implementations."""

from .memory_repository import InMemoryAnalysisRepository
from .weaviate_repository import WeaviateAnalysisRepository

__all__ = ["WeaviateAnalysisRepository", "InMemoryAnalysisRepository"]
