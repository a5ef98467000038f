"""API test fixtures - app with in-memory collaborators + httpx test client.

Invariants:
    - ASGITransport does not run the lifespan, so components are placed on
      app.state directly, wired exactly as the lifespan wires them
"""

import pytest
from httpx import ASGITransport, AsyncClient

from qdrant_mcp.config import Settings
from qdrant_mcp.main import build_session_manager, create_app
from tests.services.fakes import (
    COLLECTION, DIMENSIONS, FakeEmbedder, InMemoryVectorStore,
)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        collection_name=COLLECTION,
        vector_size=DIMENSIONS,
        sse_keepalive_seconds=0,
    )


@pytest.fixture
async def store():
    s = InMemoryVectorStore()
    await s.create_collection(COLLECTION, size=DIMENSIONS)
    return s


@pytest.fixture
def app(settings, store):
    application = create_app(settings)
    application.state.settings = settings
    application.state.vector_store = store
    application.state.session_manager = build_session_manager(
        settings, FakeEmbedder(DIMENSIONS), store,
    )
    return application


@pytest.fixture
def manager(app):
    return app.state.session_manager


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
