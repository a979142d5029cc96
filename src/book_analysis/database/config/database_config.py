"""Database configuration management."""

import os
from dataclasses import dataclass
from enum import Enum

from ..exceptions.database_exceptions import ConfigurationError


class DatabaseEnvironment(Enum):
    """Database environment types."""
    PRODUCTION = "production"
    TEST = "test"
    DEVELOPMENT = "development"


class StoreBackend(Enum):
    """Where analysis results are kept."""
    WEAVIATE = "weaviate"
    MEMORY = "memory"


# Default ports per environment; the test instance runs beside the main one
_DEFAULT_PORTS = {
    DatabaseEnvironment.PRODUCTION: (8080, 50051),
    DatabaseEnvironment.DEVELOPMENT: (8080, 50051),
    DatabaseEnvironment.TEST: (8081, 50052),
}


@dataclass
class WeaviateConfig:
    """Weaviate database configuration."""

    host: str = "localhost"
    port: int = 8080
    grpc_port: int = 50051
    scheme: str = "http"
    api_key: str | None = None
    timeout: int = 30
    collection_name: str = "BookAnalysis"
    environment: DatabaseEnvironment = DatabaseEnvironment.PRODUCTION

    @classmethod
    def from_environment(cls) -> "WeaviateConfig":
        """Create configuration from environment variables."""
        env_name = os.getenv("DB_ENVIRONMENT", "production").lower()
        try:
            environment = DatabaseEnvironment(env_name)
        except ValueError:
            environment = DatabaseEnvironment.PRODUCTION

        default_port, default_grpc_port = _DEFAULT_PORTS[environment]
        return cls(
            host=os.getenv("WEAVIATE_HOST", "localhost"),
            port=int(os.getenv("WEAVIATE_PORT", str(default_port))),
            grpc_port=int(os.getenv("WEAVIATE_GRPC_PORT", str(default_grpc_port))),
            scheme=os.getenv("WEAVIATE_SCHEME", "http"),
            api_key=os.getenv("WEAVIATE_API_KEY"),
            timeout=int(os.getenv("WEAVIATE_TIMEOUT", "30")),
            collection_name=os.getenv("WEAVIATE_ANALYSIS_COLLECTION", "BookAnalysis"),
            environment=environment,
        )

    @property
    def is_local(self) -> bool:
        """Check if this is a local Weaviate instance."""
        return self.host in ["localhost", "127.0.0.1"]

    @property
    def connection_string(self) -> str:
        """Get connection string for logging/debugging."""
        return f"{self.scheme}://{self.host}:{self.port}"


def store_backend_from_environment() -> StoreBackend:
    """Read ``ANALYSIS_STORE`` (weaviate | memory), defaulting to weaviate."""
    value = os.getenv("ANALYSIS_STORE", StoreBackend.WEAVIATE.value).lower()
    try:
        return StoreBackend(value)
    except ValueError:
        raise ConfigurationError(f"Unknown ANALYSIS_STORE backend: {value}") from None
