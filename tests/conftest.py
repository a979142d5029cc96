import json

import pytest

from book_analysis.config.analysis_config import AnalysisSettings
from book_analysis.database.repositories import InMemoryAnalysisRepository


@pytest.fixture
def settings():
    return AnalysisSettings(delay_between_chunks_ms=0)


@pytest.fixture
def repository():
    return InMemoryAnalysisRepository()


@pytest.fixture
def chunk_reply():
    """Build a model reply for one chunk, wrapped in a fenced block like real output."""

    def build(characters=(), relationships=(), interactions=()):
        payload = {
            "characters": list(characters),
            "relationships": list(relationships),
            "interactions": list(interactions),
        }
        return f"Here is the analysis:\n```json\n{json.dumps(payload)}\n```"

    return build
