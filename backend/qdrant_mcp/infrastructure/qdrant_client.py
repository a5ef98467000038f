"""Resilient Qdrant Client - httpx REST client with retry, backoff and error mapping.

Invariants:
    - Connection errors, 429 and 5xx: retried up to max_retries with exponential backoff
    - Other 4xx: immediate failure, no retry
    - Timeouts: immediate VectorStoreTimeoutError
    - All failures mapped to VectorStoreError (core/errors.py) with the upstream message
    - Responses are unwrapped from Qdrant's {"result": ..., "status": ...} envelope
    - Hybrid scoring parameters are forwarded verbatim, never interpreted here
"""

import asyncio
import logging
import random
from typing import Any
from urllib.parse import quote

import httpx

from qdrant_mcp.core.errors import (
    ErrorContext, VectorStoreError, VectorStoreTimeoutError,
)

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class ResilientQdrantClient:
    """Qdrant REST API over a pooled httpx.AsyncClient."""

    def __init__(
        self,
        url: str,
        api_key: str = "",
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        base_delay_ms: int = 200,
        max_delay_ms: int = 5_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"api-key": api_key} if api_key else {}
        self.client = httpx.AsyncClient(
            base_url=url,
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def close(self) -> None:
        await self.client.aclose()

    # ─── Collections ─────────────────────────────────────────────

    async def list_collections(self) -> dict[str, Any]:
        """{"collections": [{"name": ...}, ...]}"""
        return await self._request("GET", "/collections", operation="list_collections")

    async def get_collection(self, name: str) -> dict[str, Any]:
        """Collection info (status, points_count, config, ...)."""
        return await self._request(
            "GET", f"/collections/{_segment(name)}",
            operation="get_collection", collection=name,
        )

    async def collection_exists(self, name: str) -> bool:
        listing = await self.list_collections()
        return any(
            c.get("name") == name for c in listing.get("collections", [])
        )

    async def create_collection(
        self, name: str, *, size: int, distance: str = "Cosine",
    ) -> None:
        await self._request(
            "PUT", f"/collections/{_segment(name)}",
            json={"vectors": {"size": size, "distance": distance}},
            operation="create_collection", collection=name,
        )

    async def ensure_collection(
        self, name: str, *, size: int, distance: str = "Cosine",
    ) -> bool:
        """Create the collection when missing. Returns True if it was created."""
        if await self.collection_exists(name):
            logger.info(f"Collection {name} already exists.", extra={"collection": name})
            return False
        logger.info(f"Creating collection {name}...", extra={"collection": name})
        await self.create_collection(name, size=size, distance=distance)
        logger.info(f"Collection {name} created.", extra={"collection": name})
        return True

    # ─── Points ──────────────────────────────────────────────────

    async def upsert(self, collection: str, points: list[dict[str, Any]]) -> None:
        await self._request(
            "PUT", f"/collections/{_segment(collection)}/points",
            params={"wait": "true"},
            json={"points": points},
            operation="upsert", collection=collection,
        )

    async def search(
        self,
        collection: str,
        *,
        vector: list[float] | None = None,
        filter: dict[str, Any] | None = None,
        limit: int = 10,
        scoring: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Ranked points. Without a vector, falls back to a filtered scroll."""
        if vector is None:
            return await self._scroll(collection, filter=filter, limit=limit)
        body: dict[str, Any] = {
            "vector": vector,
            "limit": limit,
            "with_payload": True,
        }
        if filter:
            body["filter"] = filter
        if scoring:
            body["query"] = {"text": scoring["text"]}
            body["score_threshold"] = 0.0
            body["params"] = {
                "vector_weight": scoring["vector_weight"],
                "keyword_weight": scoring["keyword_weight"],
            }
        return await self._request(
            "POST", f"/collections/{_segment(collection)}/points/search",
            json=body, operation="search", collection=collection,
        )

    async def _scroll(
        self, collection: str, *, filter: dict[str, Any] | None, limit: int,
    ) -> list[dict[str, Any]]:
        body: dict[str, Any] = {
            "limit": limit,
            "with_payload": True,
            "with_vector": False,
        }
        if filter:
            body["filter"] = filter
        result = await self._request(
            "POST", f"/collections/{_segment(collection)}/points/scroll",
            json=body, operation="scroll", collection=collection,
        )
        return [
            {"id": p.get("id"), "score": None, "payload": p.get("payload")}
            for p in result.get("points", [])
        ]

    async def health_check(self) -> bool:
        """Vector store reachability (for readiness probes)."""
        try:
            response = await self.client.get("/healthz")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"Qdrant health check failed: {e}")
            return False

    # ─── Transport ───────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        collection: str | None = None,
        **kwargs: Any,
    ) -> Any:
        """Send one request with retry on transient failures."""
        context = ErrorContext(collection=collection)
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.request(method, path, **kwargs)
            except httpx.TimeoutException:
                raise VectorStoreTimeoutError(operation, context=context)
            except httpx.TransportError as e:
                await self._handle_transient_error(
                    f"connection error: {e}", operation, attempt, context,
                )
                continue

            if response.status_code in _RETRYABLE_STATUS:
                await self._handle_transient_error(
                    _error_message(response), operation, attempt, context,
                    status_code=response.status_code,
                )
                continue
            if response.is_error:
                raise VectorStoreError(
                    f"Qdrant {operation} failed ({response.status_code}): "
                    f"{_error_message(response)}",
                    operation,
                    status_code=response.status_code,
                    context=context,
                )
            return _unwrap(response, operation, context)

    async def _handle_transient_error(
        self,
        message: str,
        operation: str,
        attempt: int,
        context: ErrorContext,
        status_code: int | None = None,
    ) -> None:
        """Sleep before the next attempt, or raise once retries are exhausted."""
        if attempt >= self.max_retries:
            raise VectorStoreError(
                f"Qdrant {operation} failed after {self.max_retries} retries: {message}",
                operation,
                status_code=status_code,
                context=context,
            )
        delay = self._backoff(attempt)
        logger.warning(
            f"Transient Qdrant error during {operation}, retry after {delay}ms: {message}",
            extra={
                "attempt": attempt + 1,
                "collection": context.collection,
                "status_code": status_code,
            },
        )
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311


def _segment(name: str) -> str:
    return quote(name, safe="")


def _unwrap(response: httpx.Response, operation: str, context: ErrorContext) -> Any:
    try:
        body = response.json()
    except ValueError as e:
        raise VectorStoreError(
            f"Qdrant {operation} returned malformed JSON: {e}",
            operation, status_code=response.status_code, context=context,
        ) from e
    if isinstance(body, dict) and "result" in body:
        return body["result"]
    return body


def _error_message(response: httpx.Response) -> str:
    """Qdrant puts failures in {"status": {"error": "..."}}; fall back to raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        status = body.get("status")
        if isinstance(status, dict) and status.get("error"):
            return str(status["error"])
    return response.text or response.reason_phrase
