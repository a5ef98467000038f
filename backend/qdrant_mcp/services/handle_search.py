"""Search Handlers - read tools over the default collection (3 methods).

Invariants:
    - Every method returns a list of SearchHit dicts, ordered by descending score
    - hybrid-search asks the store for 2 x limit candidates, then truncates to limit
    - Hybrid weights are forwarded to the store untouched; with keyword_weight == 0
      the request is a plain vector search
    - filtered-search embeds only when use_vector is set and a query is present
"""

from typing import Any

from qdrant_mcp.core.format_results import rank_hits
from qdrant_mcp.core.repository_protocols import EmbeddingProvider, VectorStore
from qdrant_mcp.schemas.tools import FilteredSearchArgs, FindArgs, HybridSearchArgs

HYBRID_CANDIDATE_MULTIPLIER = 2


class SearchHandlers:
    """find, hybrid-search and filtered-search."""

    def __init__(
        self, embedder: EmbeddingProvider, store: VectorStore, collection: str,
    ):
        self.embedder = embedder
        self.store = store
        self.collection = collection

    async def find(self, args: FindArgs) -> list[dict[str, Any]]:
        vector = await self.embedder.embed(args.query)
        points = await self.store.search(
            self.collection, vector=vector, filter=args.filter, limit=args.limit,
        )
        return rank_hits(points, limit=args.limit)

    async def hybrid_search(self, args: HybridSearchArgs) -> list[dict[str, Any]]:
        """Vector similarity blended with keyword relevance by the store."""
        vector = await self.embedder.embed(args.query)
        scoring = None
        if args.keyword_weight > 0:
            scoring = {
                "text": args.query,
                "vector_weight": args.vector_weight,
                "keyword_weight": args.keyword_weight,
            }
        points = await self.store.search(
            self.collection,
            vector=vector,
            filter=args.filters,
            limit=args.limit * HYBRID_CANDIDATE_MULTIPLIER,
            scoring=scoring,
        )
        return rank_hits(points, limit=args.limit)

    async def filtered_search(
        self, args: FilteredSearchArgs,
    ) -> list[dict[str, Any]]:
        vector = None
        if args.use_vector and args.query:
            vector = await self.embedder.embed(args.query)
        points = await self.store.search(
            self.collection, vector=vector, filter=args.filters, limit=args.limit,
        )
        return rank_hits(points, limit=args.limit)
