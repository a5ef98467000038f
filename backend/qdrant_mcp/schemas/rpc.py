"""JSON-RPC Frame Schemas - inbound request/notification frames and tools/call params.

Invariants:
    - jsonrpc must be "2.0" and method a non-empty string
    - A frame without an id is a notification and never gets a response
    - ids are strings or integers (booleans rejected)
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr


class RpcRequest(BaseModel):
    """Inbound JSON-RPC 2.0 request or notification."""
    model_config = ConfigDict(extra="ignore")

    jsonrpc: Literal["2.0"]
    method: str = Field(min_length=1)
    id: StrictStr | StrictInt | None = None
    params: dict[str, Any] | None = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


class ToolCallParams(BaseModel):
    """params of tools/call."""
    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    arguments: dict[str, Any] | None = None
