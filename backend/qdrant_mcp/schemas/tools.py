"""Tool Argument Schemas - one pydantic model per tool, validated before any collaborator call.

Invariants:
    - Required fields, defaults and value constraints live here and nowhere else
    - Weights are bounded 0.0-1.0; limits are >= 1
    - Arguments are accepted in snake_case and camelCase
    - Unknown argument names are ignored, not rejected
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ToolArgs(BaseModel):
    """Base for tool arguments: camelCase aliases, snake_case also accepted."""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore",
    )


class StoreArgs(ToolArgs):
    information: str = Field(min_length=1, description="Information to store")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Metadata for the information",
    )


class FindArgs(ToolArgs):
    query: str = Field(min_length=1, description="Search query")
    limit: int = Field(5, ge=1, description="Maximum number of results to return")
    filter: dict[str, Any] | None = Field(None, description="Metadata filter")


class HybridSearchArgs(ToolArgs):
    query: str = Field(min_length=1, description="The search query")
    vector_weight: float = Field(
        0.7, ge=0.0, le=1.0,
        description="Weight for vector search results (0.0-1.0)",
    )
    keyword_weight: float = Field(
        0.3, ge=0.0, le=1.0,
        description="Weight for keyword search results (0.0-1.0)",
    )
    filters: dict[str, Any] | None = Field(
        None, description="Metadata filters to apply to results",
    )
    limit: int = Field(10, ge=1, description="Maximum number of results to return")


class FilteredSearchArgs(ToolArgs):
    filters: dict[str, Any] = Field(
        description="Metadata filters to apply to results",
    )
    query: str | None = Field(
        None, description="The search query (optional if filters are provided)",
    )
    use_vector: bool = Field(True, description="Whether to use vector search")
    limit: int = Field(10, ge=1, description="Maximum number of results to return")


class CollectionStatsArgs(ToolArgs):
    collection_name: str = Field(min_length=1, description="Name of the collection")


class ListCollectionsArgs(ToolArgs):
    pass


class BatchItem(ToolArgs):
    information: str = Field(min_length=1, description="Information to store")
    metadata: dict[str, Any] | None = Field(
        None, description="Metadata for the information",
    )
    id: str | int | None = Field(None, description="Optional ID for the point")


class BatchStoreArgs(ToolArgs):
    items: list[BatchItem] = Field(
        min_length=1, description="Array of items to store",
    )
    collection_name: str | None = Field(
        None,
        description="Optional collection name (defaults to main collection)",
    )


def input_schema(model: type[ToolArgs]) -> dict[str, Any]:
    """JSON Schema advertised in tools/list, using the snake_case field names."""
    schema = model.model_json_schema(by_alias=False)
    schema.pop("title", None)
    schema.setdefault("properties", {})
    schema["type"] = "object"
    return schema
