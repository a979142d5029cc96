"""Weaviate collection schema for stored analyses."""

from weaviate import WeaviateClient
from weaviate.classes.config import DataType, Property
from weaviate.collections import Collection

# Nested record lists are stored as JSON text; only the scalar fields used for
# lookup and sorting get their own typed property.
ANALYSIS_PROPERTIES = [
    Property(name="book_id", data_type=DataType.TEXT),
    Property(name="title", data_type=DataType.TEXT),
    Property(name="author", data_type=DataType.TEXT),
    Property(name="provider", data_type=DataType.TEXT),
    Property(name="consistency_key", data_type=DataType.TEXT),
    Property(name="characters_json", data_type=DataType.TEXT, skip_vectorization=True),
    Property(name="relationships_json", data_type=DataType.TEXT, skip_vectorization=True),
    Property(name="interactions_json", data_type=DataType.TEXT, skip_vectorization=True),
    Property(name="meta_json", data_type=DataType.TEXT, skip_vectorization=True),
    Property(name="created_at", data_type=DataType.DATE),
    Property(name="updated_at", data_type=DataType.DATE),
]


def get_or_create_analysis_collection(
    client: WeaviateClient, class_name: str
) -> Collection:
    """Return the analysis collection, creating it on first use."""
    if client.collections.exists(class_name):
        return client.collections.get(class_name)
    return client.collections.create(name=class_name, properties=ANALYSIS_PROPERTIES)
