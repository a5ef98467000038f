"""Domain Types - tool identities, stored-item payloads and the shared result shapes.

Invariants:
    - ToolName is the closed set of tools; every dispatch goes through it
    - SearchHit is the single result shape for every search-like tool
    - ToolResult is either a success payload or an error message, never both
"""

import json
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, NewType


# ─── Identity Types ──────────────────────────────────────────────

SessionId = NewType("SessionId", str)
PointId = NewType("PointId", str)


# ─── Enums ───────────────────────────────────────────────────────

class ToolName(str, Enum):
    """Every tool the server exposes. Wire names add the configured prefix."""
    STORE = "store"
    FIND = "find"
    HYBRID_SEARCH = "hybrid-search"
    FILTERED_SEARCH = "filtered-search"
    COLLECTION_STATS = "collection-stats"
    LIST_COLLECTIONS = "list-collections"
    BATCH_STORE = "batch-store"


def resolve_tool_name(name: str, prefix: str = "") -> ToolName | None:
    """Map a wire tool name (prefixed or bare) to its ToolName, or None."""
    if prefix and name.startswith(prefix):
        name = name[len(prefix):]
    try:
        return ToolName(name)
    except ValueError:
        return None


# ─── Result shapes ───────────────────────────────────────────────

@dataclass(frozen=True)
class SearchHit:
    """One retrieved item, identical for find, hybrid-search and filtered-search."""
    information: str | None
    metadata: dict[str, Any] = field(default_factory=dict)
    score: float | None = None
    timestamp: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ToolResult:
    """Outcome of exactly one tool call."""
    payload: Any = None
    is_error: bool = False
    message: str | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, payload: Any) -> "ToolResult":
        return cls(payload=payload)

    @classmethod
    def failure(cls, message: str, error_code: str) -> "ToolResult":
        return cls(is_error=True, message=message, error_code=error_code)

    def to_wire(self) -> dict[str, Any]:
        """MCP CallToolResult: one text content block plus the error flag."""
        if self.is_error:
            text = self.message or "Unknown error"
        else:
            text = json.dumps(self.payload, ensure_ascii=False, default=str)
        return {
            "content": [{"type": "text", "text": text}],
            "isError": self.is_error,
        }
