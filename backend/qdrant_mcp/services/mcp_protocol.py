"""MCP Protocol Handler - turns one JSON-RPC frame into at most one response frame.

Invariants:
    - Requests always get exactly one response (result or error); notifications none
    - Frames that are responses from the client (no method) are ignored
    - tools/call always answers with a CallToolResult, even when the tool fails
    - handle() never raises for anything a client can send
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError

from qdrant_mcp.core.wire_format import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    error_response,
    extract_request_id,
    success_response,
)
from qdrant_mcp.schemas.rpc import RpcRequest, ToolCallParams
from qdrant_mcp.services.define_tools import list_tool_definitions
from qdrant_mcp.services.tool_dispatch import ToolDispatch

logger = logging.getLogger(__name__)

LATEST_PROTOCOL_VERSION = "2025-03-26"
SUPPORTED_PROTOCOL_VERSIONS = ("2025-03-26", "2024-11-05")

# MCP (syslog) severities -> stdlib levels
_MCP_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "notice": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "alert": logging.CRITICAL,
    "emergency": logging.CRITICAL,
}


class _InvalidParams(Exception):
    pass


class McpProtocol:
    """JSON-RPC method table for the MCP server side."""

    def __init__(
        self,
        dispatch: ToolDispatch,
        server_name: str,
        server_version: str,
        tool_prefix: str = "",
    ):
        self._dispatch = dispatch
        self._server_info = {"name": server_name, "version": server_version}
        self._tool_prefix = tool_prefix
        self._methods: dict[str, Callable[[dict], Awaitable[Any]]] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
            "logging/setLevel": self._set_level,
        }

    async def handle(self, frame: Any) -> dict[str, Any] | None:
        if isinstance(frame, dict) and "method" not in frame and (
            "result" in frame or "error" in frame
        ):
            return None
        try:
            request = RpcRequest.model_validate(frame)
        except ValidationError as e:
            logger.warning(f"Invalid JSON-RPC frame: {e.errors()}")
            return error_response(
                extract_request_id(frame), INVALID_REQUEST, "Invalid Request",
            )

        if request.is_notification:
            logger.debug(
                f"Notification received: {request.method}",
                extra={"method": request.method},
            )
            return None

        method = self._methods.get(request.method)
        if method is None:
            return error_response(
                request.id, METHOD_NOT_FOUND,
                f"Method not found: {request.method}",
            )
        try:
            result = await method(request.params or {})
        except _InvalidParams as e:
            return error_response(request.id, INVALID_PARAMS, str(e))
        return success_response(request.id, result)

    async def _initialize(self, params: dict) -> dict[str, Any]:
        requested = params.get("protocolVersion")
        version = (
            requested if requested in SUPPORTED_PROTOCOL_VERSIONS
            else LATEST_PROTOCOL_VERSION
        )
        client = params.get("clientInfo")
        if not isinstance(client, dict):
            client = {}
        logger.info(
            f"Client initialized: {client.get('name', 'unknown')} "
            f"(protocol {version})",
        )
        return {
            "protocolVersion": version,
            "capabilities": {
                "tools": {"listChanged": False},
                "logging": {},
            },
            "serverInfo": self._server_info,
        }

    async def _set_level(self, params: dict) -> dict[str, Any]:
        """Adjust this package's log level (MCP logging capability)."""
        level = _MCP_LOG_LEVELS.get(str(params.get("level", "")).lower())
        if level is None:
            raise _InvalidParams(f"Unknown log level: {params.get('level')}")
        logging.getLogger("qdrant_mcp").setLevel(level)
        return {}

    async def _ping(self, params: dict) -> dict[str, Any]:
        return {}

    async def _tools_list(self, params: dict) -> dict[str, Any]:
        return {"tools": list_tool_definitions(self._tool_prefix)}

    async def _tools_call(self, params: dict) -> dict[str, Any]:
        try:
            call = ToolCallParams.model_validate(params)
        except ValidationError as e:
            raise _InvalidParams(f"Invalid tools/call params: {e.errors()[0]['msg']}") from e
        result = await self._dispatch.execute(call.name, call.arguments)
        return result.to_wire()
