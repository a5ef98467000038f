"""Collection Handlers - read-only collection metadata (2 methods).

Invariants:
    - Results are the store's responses, returned verbatim
    - No embedding calls
"""

from typing import Any

from qdrant_mcp.core.repository_protocols import VectorStore
from qdrant_mcp.schemas.tools import CollectionStatsArgs, ListCollectionsArgs


class CollectionHandlers:
    """collection-stats and list-collections."""

    def __init__(self, store: VectorStore):
        self.store = store

    async def collection_stats(self, args: CollectionStatsArgs) -> dict[str, Any]:
        return await self.store.get_collection(args.collection_name)

    async def list_collections(self, args: ListCollectionsArgs) -> dict[str, Any]:
        return await self.store.list_collections()
