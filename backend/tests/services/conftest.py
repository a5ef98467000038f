"""Service test fixtures - in-memory collaborators wired like the real server.

Invariants:
    - Every test gets a fresh store with the default collection already created
    - Dimensions of the fake embedder and the collection always agree
"""

import pytest

from qdrant_mcp.services.tool_dispatch import ToolDispatch
from tests.services.fakes import (
    COLLECTION, DIMENSIONS, FakeEmbedder, InMemoryVectorStore,
)


@pytest.fixture
def embedder():
    return FakeEmbedder(dimensions=DIMENSIONS)


@pytest.fixture
async def store():
    s = InMemoryVectorStore()
    await s.create_collection(COLLECTION, size=DIMENSIONS)
    return s


@pytest.fixture
def dispatch(embedder, store):
    return ToolDispatch(embedder, store, COLLECTION, tool_prefix="qdrant-")
