"""Health & Readiness Probes - liveness and readiness endpoints for deployment monitors.

Invariants:
    - GET /health always returns {"status": "ok"} if the process is up, no side effects
    - GET /health/ready returns 503 if the vector store is unreachable
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from qdrant_mcp.api.dependencies import get_vector_store

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


@router.get("", status_code=status.HTTP_200_OK)
async def health_check():
    """Liveness probe."""
    return {"status": "ok"}


@router.get("/ready")
async def readiness_check(store=Depends(get_vector_store)):
    """Readiness probe, includes vector-store connectivity."""
    store_ok = await store.health_check()
    if not store_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "vector_store_unavailable",
            },
        )
    return {"status": "ready", "checks": {"vector_store": "healthy"}}
