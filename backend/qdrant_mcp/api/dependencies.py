"""Route Dependencies - access to the components built by the lifespan.

Invariants:
    - Components live on app.state, never in module globals
    - A missing component is a startup bug and surfaces as RuntimeError
"""

from fastapi import Request

from qdrant_mcp.services.session_manager import SessionManager


def get_session_manager(request: Request) -> SessionManager:
    manager = getattr(request.app.state, "session_manager", None)
    if manager is None:
        raise RuntimeError("Session manager not initialized")
    return manager


def get_vector_store(request: Request):
    store = getattr(request.app.state, "vector_store", None)
    if store is None:
        raise RuntimeError("Vector store not initialized")
    return store
