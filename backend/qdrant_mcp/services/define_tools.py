"""Tool Definitions - name, argument model, description and error label per tool.

Invariants:
    - Exactly one ToolDefinition per ToolName
    - inputSchema advertised in tools/list is generated from the argument model,
      so the advertised schema and the enforced schema cannot drift
    - error_action completes "Error <action>: <message>" in error results
"""

from dataclasses import dataclass
from typing import Any

from qdrant_mcp.core.domain_types import ToolName
from qdrant_mcp.schemas.tools import (
    BatchStoreArgs,
    CollectionStatsArgs,
    FilteredSearchArgs,
    FindArgs,
    HybridSearchArgs,
    ListCollectionsArgs,
    StoreArgs,
    ToolArgs,
    input_schema,
)


@dataclass(frozen=True)
class ToolDefinition:
    name: ToolName
    args_model: type[ToolArgs]
    description: str
    error_action: str


TOOL_DEFINITIONS: dict[ToolName, ToolDefinition] = {
    ToolName.STORE: ToolDefinition(
        ToolName.STORE, StoreArgs,
        "Store a piece of information, with optional metadata, in the vector database.",
        "storing information",
    ),
    ToolName.FIND: ToolDefinition(
        ToolName.FIND, FindArgs,
        "Find stored information semantically similar to a query.",
        "searching information",
    ),
    ToolName.HYBRID_SEARCH: ToolDefinition(
        ToolName.HYBRID_SEARCH, HybridSearchArgs,
        "Search combining vector similarity with keyword relevance, "
        "weighted by vector_weight and keyword_weight.",
        "performing hybrid search",
    ),
    ToolName.FILTERED_SEARCH: ToolDefinition(
        ToolName.FILTERED_SEARCH, FilteredSearchArgs,
        "Search by metadata filters, optionally ranked by similarity to a query.",
        "performing filtered search",
    ),
    ToolName.COLLECTION_STATS: ToolDefinition(
        ToolName.COLLECTION_STATS, CollectionStatsArgs,
        "Get statistics and configuration of a collection.",
        "getting collection stats",
    ),
    ToolName.LIST_COLLECTIONS: ToolDefinition(
        ToolName.LIST_COLLECTIONS, ListCollectionsArgs,
        "List all collections in the vector database.",
        "listing collections",
    ),
    ToolName.BATCH_STORE: ToolDefinition(
        ToolName.BATCH_STORE, BatchStoreArgs,
        "Store several pieces of information in one batch.",
        "batch storing information",
    ),
}


def list_tool_definitions(prefix: str = "") -> list[dict[str, Any]]:
    """tools/list payload: MCP tool descriptors with prefixed names."""
    return [
        {
            "name": f"{prefix}{definition.name.value}",
            "description": definition.description,
            "inputSchema": input_schema(definition.args_model),
        }
        for definition in TOOL_DEFINITIONS.values()
    ]
