"""Application Lifespan - startup wiring and ordered shutdown.

Tests cover:
    - Startup creates the default collection and publishes components on app.state
    - Shutdown closes sessions, then the vector-store client
    - A collection failure aborts startup and closes the client
    - run() hands the app to uvicorn with configured host and port
"""

from unittest.mock import AsyncMock

import pytest

import qdrant_mcp.main as main_module
from qdrant_mcp.config import Settings
from qdrant_mcp.core.errors import VectorStoreError
from tests.services.fakes import InMemoryVectorStore


@pytest.fixture
def settings():
    return Settings(_env_file=None, collection_name="notes", vector_size=16)


@pytest.mark.asyncio
async def test_startup_and_shutdown(monkeypatch, settings):
    store = InMemoryVectorStore()
    store.close = AsyncMock()
    monkeypatch.setattr(main_module, "ResilientQdrantClient", lambda *a, **k: store)
    app = main_module.create_app(settings)

    async with app.router.lifespan_context(app):
        assert await store.collection_exists("notes")
        assert store.collections["notes"]["size"] == 16
        manager = app.state.session_manager
        session = manager.open_session()
        assert app.state.vector_store is store

    assert session.closed
    assert not manager.accepting
    store.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_collection_failure_aborts_startup(monkeypatch, settings):
    store = InMemoryVectorStore()
    store.ensure_collection = AsyncMock(
        side_effect=VectorStoreError("connection refused", "list_collections"),
    )
    store.close = AsyncMock()
    monkeypatch.setattr(main_module, "ResilientQdrantClient", lambda *a, **k: store)
    app = main_module.create_app(settings)

    with pytest.raises(VectorStoreError):
        async with app.router.lifespan_context(app):
            pass
    store.close.assert_awaited_once()


def test_run_serves_with_configured_host_and_port(monkeypatch):
    calls = []
    monkeypatch.setattr(main_module.uvicorn, "run", lambda app, **kw: calls.append(kw))
    monkeypatch.setattr(
        main_module, "get_settings",
        lambda: Settings(_env_file=None, host="127.0.0.1", port=4000),
    )
    main_module.run()
    assert calls == [{"host": "127.0.0.1", "port": 4000, "timeout_graceful_shutdown": 5}]
