"""Wire Format - JSON-RPC 2.0 envelopes and Server-Sent Events framing.

Invariants:
    - format_sse_event returns one complete event (terminated by a blank line);
      a frame is always written to the channel as a single string
    - Multi-line data is split into one `data:` line per line, as SSE requires
    - Error responses always carry an integer code and a message
"""

import json
from typing import Any

JSONRPC_VERSION = "2.0"

# JSON-RPC 2.0 reserved error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

KEEPALIVE_COMMENT = ": keepalive\n\n"

RequestId = str | int | None


def success_response(request_id: RequestId, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(
    request_id: RequestId, code: int, message: str, data: Any = None,
) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def extract_request_id(frame: Any) -> RequestId:
    """Best-effort id of a possibly malformed frame."""
    if isinstance(frame, dict):
        request_id = frame.get("id")
        if isinstance(request_id, (str, int)) and not isinstance(request_id, bool):
            return request_id
    return None


def format_sse_event(event: str, data: str) -> str:
    """Format one SSE event with a name and (possibly multi-line) data."""
    lines = [f"event: {event}"]
    lines.extend(f"data: {line}" for line in data.split("\n"))
    return "\n".join(lines) + "\n\n"


def format_message_event(message: dict[str, Any]) -> str:
    """JSON-RPC message as an SSE `message` event."""
    return format_sse_event(
        "message", json.dumps(message, ensure_ascii=False, default=str),
    )
