"""Pytest configuration and global fixtures for docrag tests."""

import tempfile
from pathlib import Path

import pytest

from docrag.cache import InMemoryEmbeddingCache, SQLiteEmbeddingCache
from docrag.config import EmbeddingConfig
from docrag.core import ChunkEmbedding, EmbeddingRecord
from docrag.embedder import MockEmbedder
from tests.utils.fakes import ScriptedEmbedder


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_text():
    return (
        "Retrieval-Augmented Generation (RAG) is a technique that combines "
        "information retrieval with large language models.\n\n"
        "The policy covers water damage caused by burst pipes. "
        "Flood damage from rivers is excluded from the policy.\n\n"
        "Claims must be filed within thirty days of the incident."
    )


# ==================== Component Fixtures ====================

@pytest.fixture
def mock_embedder():
    return MockEmbedder(EmbeddingConfig(provider="mock", model="mock", dimension=64))


@pytest.fixture
def scripted_embedder():
    return ScriptedEmbedder()


@pytest.fixture
def memory_cache():
    return InMemoryEmbeddingCache()


@pytest.fixture
def sqlite_cache(temp_dir):
    cache = SQLiteEmbeddingCache(db_path=str(temp_dir / "embeddings.db"))
    yield cache
    cache.close_sync()


@pytest.fixture
def make_records():
    """Build a contiguous batch of records for a document."""
    def _make(document_id: str, count: int, dimension: int = 3) -> list[EmbeddingRecord]:
        return [
            EmbeddingRecord.from_embedding(
                document_id,
                ChunkEmbedding(
                    index=i,
                    chunk=f"chunk {i}",
                    vector=[float(i + 1)] + [0.5] * (dimension - 1),
                ),
            )
            for i in range(count)
        ]
    return _make


# ==================== Pytest Configuration ====================

def pytest_configure(config):
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


def pytest_collection_modifyitems(config, items):
    for item in items:
        rel_path = Path(item.fspath).relative_to(Path(__file__).parent)
        if "unit" in rel_path.parts:
            item.add_marker(pytest.mark.unit)
        elif "integration" in rel_path.parts:
            item.add_marker(pytest.mark.integration)
