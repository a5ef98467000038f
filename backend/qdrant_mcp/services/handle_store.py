"""Store Handlers - write tools (2 methods).

Invariants:
    - Every write embeds before upserting; nothing is written if embedding fails
    - store always generates a fresh id; batch-store keeps client ids when given
    - batch-store embeds all texts in one call and pairs vectors by position
    - All points of one call share one creation timestamp
"""

from qdrant_mcp.core.errors import EmbeddingError
from qdrant_mcp.core.format_results import build_point, build_points
from qdrant_mcp.core.repository_protocols import EmbeddingProvider, VectorStore
from qdrant_mcp.schemas.tools import BatchStoreArgs, StoreArgs


class StoreHandlers:
    """store and batch-store."""

    def __init__(
        self, embedder: EmbeddingProvider, store: VectorStore, collection: str,
    ):
        self.embedder = embedder
        self.store = store
        self.collection = collection

    async def store_information(self, args: StoreArgs) -> dict:
        """Embed one piece of information and upsert it under a new id."""
        vector = await self.embedder.embed(args.information)
        point = build_point(args.information, vector, metadata=args.metadata)
        await self.store.upsert(self.collection, [point])
        return {"success": True, "id": point["id"]}

    async def batch_store(self, args: BatchStoreArgs) -> dict:
        """Embed many items in one batch and upsert them together."""
        collection = args.collection_name or self.collection
        items = [item.model_dump() for item in args.items]
        vectors = await self.embedder.embed_batch(
            [item["information"] for item in items],
        )
        try:
            points = build_points(items, vectors)
        except ValueError as e:
            raise EmbeddingError(str(e)) from e
        await self.store.upsert(collection, points)
        return {
            "success": True,
            "message": f"Successfully stored {len(points)} items",
            "ids": [p["id"] for p in points],
        }
