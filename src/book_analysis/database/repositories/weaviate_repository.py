"""Weaviate implementation of the analysis repository."""

import json
import logging
from typing import Any

import weaviate
from weaviate import WeaviateClient
from weaviate.classes.init import Auth
from weaviate.classes.query import Sort
from weaviate.collections import Collection
from weaviate.util import generate_uuid5

from ...data_models.analysis_record import AnalysisPage, AnalysisRecord
from ..collections import get_or_create_analysis_collection
from ..config.database_config import WeaviateConfig
from ..exceptions.database_exceptions import (
    CollectionError,
    ConnectionError,
    QueryError,
    ValidationError,
)
from ..interfaces.analysis_repository_interface import AnalysisRepository

logger = logging.getLogger(__name__)


class WeaviateAnalysisRepository(AnalysisRepository):
    """
    Stores one Weaviate object per book.

    The object UUID is derived from the book identifier, so an upsert for the
    same book always targets the same object.
    """

    def __init__(self, config: WeaviateConfig, client: WeaviateClient | None = None):
        """
        Initialize the Weaviate repository.

        Args:
            config: Weaviate configuration
            client: Optional pre-configured Weaviate client
        """
        self.config = config
        self.collection_name = config.collection_name
        self._client = client
        self._collection: Collection | None = None

    @property
    def client(self) -> WeaviateClient:
        """Get or create the Weaviate client."""
        if self._client is None:
            try:
                if self.config.is_local:
                    self._client = weaviate.connect_to_local(
                        host=self.config.host,
                        port=self.config.port,
                        grpc_port=self.config.grpc_port,
                    )
                else:
                    self._client = weaviate.connect_to_custom(
                        http_host=self.config.host,
                        http_port=self.config.port,
                        http_secure=self.config.scheme == "https",
                        grpc_host=self.config.host,
                        grpc_port=self.config.grpc_port,
                        grpc_secure=self.config.scheme == "https",
                        auth_credentials=Auth.api_key(self.config.api_key)
                        if self.config.api_key
                        else None,
                    )

                logger.info(f"Connected to Weaviate at {self.config.connection_string}")
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Weaviate: {str(e)}", e) from e

        return self._client

    @property
    def collection(self) -> Collection:
        """Get or create the collection."""
        if self._collection is None:
            try:
                self._collection = get_or_create_analysis_collection(
                    self.client, self.collection_name
                )
                logger.info(f"Using collection: {self.collection_name}")
            except ConnectionError:
                raise
            except Exception as e:
                raise CollectionError(
                    f"Failed to access collection '{self.collection_name}': {str(e)}", e
                ) from e

        return self._collection

    def close(self) -> None:
        """Close the database connection."""
        if self._client is not None:
            try:
                self._client.close()
                logger.info("Weaviate connection closed")
            except Exception as e:
                logger.warning(f"Error closing Weaviate connection: {str(e)}")
            finally:
                self._client = None
                self._collection = None

    @staticmethod
    def object_id(book_id: str) -> str:
        return str(generate_uuid5(book_id))

    @staticmethod
    def _record_to_properties(record: AnalysisRecord) -> dict[str, Any]:
        def dump(items) -> str:
            return json.dumps(
                [item.model_dump(by_alias=True, mode="json", exclude_none=True) for item in items],
                ensure_ascii=False,
            )

        return {
            "book_id": record.book_id,
            "title": record.title,
            "author": record.author,
            "provider": record.meta.provider,
            "consistency_key": record.meta.consistency_key,
            "characters_json": dump(record.characters),
            "relationships_json": dump(record.relationships),
            "interactions_json": dump(record.interactions),
            "meta_json": record.meta.model_dump_json(by_alias=True),
            "created_at": record.created_at,
            "updated_at": record.updated_at,
        }

    @staticmethod
    def _properties_to_record(properties: dict[str, Any]) -> AnalysisRecord:
        def load(key: str) -> Any:
            raw = properties.get(key)
            try:
                return json.loads(raw) if raw else None
            except ValueError:
                logger.warning(f"Stored {key} is not valid JSON; treating as empty")
                return None

        data = {
            "bookId": properties.get("book_id"),
            "title": properties.get("title"),
            "author": properties.get("author"),
            "characters": load("characters_json") or [],
            "relationships": load("relationships_json") or [],
            "interactions": load("interactions_json") or [],
            "meta": load("meta_json") or {},
        }
        for key, alias in (("created_at", "createdAt"), ("updated_at", "updatedAt")):
            if properties.get(key) is not None:
                data[alias] = properties[key]
        return AnalysisRecord.model_validate(data)

    def get_by_book_id(self, book_id: str) -> AnalysisRecord | None:
        try:
            result = self.collection.query.fetch_object_by_id(self.object_id(book_id))
        except Exception as e:
            raise QueryError(f"Failed to fetch analysis for book {book_id}: {str(e)}", e) from e

        if result is None:
            return None
        return self._properties_to_record(result.properties)

    def upsert(self, record: AnalysisRecord) -> str:
        if not isinstance(record, AnalysisRecord):
            raise ValidationError(f"Expected AnalysisRecord, got {type(record).__name__}")

        object_id = self.object_id(record.book_id)
        try:
            existing = self.collection.query.fetch_object_by_id(object_id)
            if existing is not None:
                created_at = existing.properties.get("created_at") or record.created_at
                record = record.model_copy(update={"created_at": created_at})
                self.collection.data.replace(
                    uuid=object_id, properties=self._record_to_properties(record)
                )
                logger.debug(f"Replaced analysis for book {record.book_id}")
            else:
                self.collection.data.insert(
                    properties=self._record_to_properties(record), uuid=object_id
                )
                logger.debug(f"Created analysis for book {record.book_id}")
        except Exception as e:
            raise CollectionError(
                f"Failed to save analysis for book {record.book_id}: {str(e)}", e
            ) from e

        return object_id

    def delete(self, book_id: str) -> bool:
        object_id = self.object_id(book_id)
        try:
            if not self.collection.data.exists(object_id):
                return False
            self.collection.data.delete_by_id(object_id)
            logger.debug(f"Deleted analysis for book {book_id}")
            return True
        except Exception as e:
            raise CollectionError(
                f"Failed to delete analysis for book {book_id}: {str(e)}", e
            ) from e

    def list_all(
        self, page: int = 1, limit: int = 10, sort_order: str = "desc"
    ) -> AnalysisPage:
        self.validate_page_args(page, limit, sort_order)
        try:
            total = self.count()
            response = self.collection.query.fetch_objects(
                limit=limit,
                offset=(page - 1) * limit,
                sort=Sort.by_property("updated_at", ascending=sort_order == "asc"),
            )
            records = [self._properties_to_record(obj.properties) for obj in response.objects]
        except Exception as e:
            raise QueryError(f"Failed to list analyses: {str(e)}", e) from e

        return self.build_page(records, total, page, limit)

    def count(self) -> int:
        try:
            result = self.collection.aggregate.over_all(total_count=True)
            return result.total_count or 0
        except Exception as e:
            raise QueryError(f"Failed to count analyses: {str(e)}", e) from e
