"""Qdrant HTTP MCP - FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map QdrantMcpError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - The default collection is confirmed (or created) before any request is
      served; failure aborts startup
    - Shutdown closes every open session before the vector-store client
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from qdrant_mcp.api.error_handlers import register_error_handlers
from qdrant_mcp.api.routes import health, mcp_transport
from qdrant_mcp.config import Settings, get_settings
from qdrant_mcp.core.repository_protocols import EmbeddingProvider
from qdrant_mcp.infrastructure.embedding_client import FastEmbedClient
from qdrant_mcp.infrastructure.observability import setup_logging
from qdrant_mcp.infrastructure.qdrant_client import ResilientQdrantClient
from qdrant_mcp.services.mcp_protocol import McpProtocol
from qdrant_mcp.services.session_manager import SessionManager
from qdrant_mcp.services.tool_dispatch import ToolDispatch

logger = logging.getLogger(__name__)


def build_session_manager(
    settings: Settings, embedder: EmbeddingProvider, store,
) -> SessionManager:
    """Wire dispatch -> protocol -> session manager."""
    dispatch = ToolDispatch(
        embedder, store, settings.collection_name,
        tool_prefix=settings.tool_name_prefix,
    )
    protocol = McpProtocol(
        dispatch,
        server_name=settings.server_name,
        server_version=settings.server_version,
        tool_prefix=settings.tool_name_prefix,
    )
    return SessionManager(
        protocol.handle,
        queue_size=settings.session_queue_size,
        delivery_timeout=settings.delivery_timeout_seconds,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle."""
        setup_logging(settings.log_level, settings.log_format)
        store = ResilientQdrantClient(
            settings.qdrant_url,
            api_key=settings.qdrant_api_key,
            timeout_seconds=settings.qdrant_timeout_seconds,
            max_retries=settings.qdrant_max_retries,
            base_delay_ms=settings.qdrant_base_delay_ms,
            max_delay_ms=settings.qdrant_max_delay_ms,
        )
        embedder = FastEmbedClient(
            settings.embedding_model, dimensions=settings.vector_size,
        )
        try:
            await store.ensure_collection(
                settings.collection_name,
                size=settings.vector_size,
                distance=settings.vector_distance,
            )
        except Exception:
            logger.error("Error ensuring collection exists", exc_info=True)
            await store.close()
            raise
        manager = build_session_manager(settings, embedder, store)
        app.state.settings = settings
        app.state.vector_store = store
        app.state.session_manager = manager
        logger.info(
            f"Qdrant HTTP MCP server ready (SSE endpoint: {settings.sse_path}, "
            f"messages endpoint: {settings.messages_path})",
        )
        yield
        logger.info("Shutting down server...")
        await manager.shutdown()
        await store.close()
        logger.info("Server shutdown complete")

    app = FastAPI(
        title="Qdrant HTTP MCP",
        version=settings.server_version,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(mcp_transport.create_router(
        settings.sse_path,
        settings.messages_path,
        keepalive_seconds=settings.sse_keepalive_seconds,
    ))
    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        timeout_graceful_shutdown=settings.shutdown_grace_seconds,
    )


if __name__ == "__main__":
    run()
