"""Boundary Protocols - contracts between the tool pipeline and its collaborators.

Invariants:
    - Tool handlers depend on these Protocols only, never on concrete clients
    - Implementations raise EmbeddingError / VectorStoreError (core/errors.py)
    - embed_batch preserves input order: one vector per text, same dimensionality
    - search returns points shaped {id, score, payload}; score is None when
      no vector was supplied (filter-only retrieval)
"""

from typing import Any, Protocol


class EmbeddingProvider(Protocol):
    """Text -> fixed-length vector."""
    async def embed(self, text: str) -> list[float]: ...
    async def embed_batch(self, texts: list[str]) -> list[list[float]]: ...


class VectorStore(Protocol):
    """Point storage, similarity search and collection metadata."""
    async def list_collections(self) -> dict[str, Any]: ...
    async def get_collection(self, name: str) -> dict[str, Any]: ...
    async def collection_exists(self, name: str) -> bool: ...
    async def create_collection(
        self, name: str, *, size: int, distance: str,
    ) -> None: ...
    async def upsert(
        self, collection: str, points: list[dict[str, Any]],
    ) -> None: ...
    async def search(
        self,
        collection: str,
        *,
        vector: list[float] | None = None,
        filter: dict[str, Any] | None = None,
        limit: int = 10,
        scoring: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]: ...
