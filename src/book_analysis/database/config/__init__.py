"""Database configuration module."""

from .database_config import (
    DatabaseEnvironment,
    StoreBackend,
    WeaviateConfig,
    store_backend_from_environment,
)

__all__ = [
    "WeaviateConfig",
    "DatabaseEnvironment",
    "StoreBackend",
    "store_backend_from_environment",
]
