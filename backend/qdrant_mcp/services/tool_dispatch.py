"""Tool Dispatch - explicit routing from tool name to validated handler call.

Invariants:
    - Every tool->handler mapping is visible in one dict: no getattr magic, no auto-discovery
    - Arguments are validated against the tool's model before any collaborator call
    - Unknown tools, invalid arguments and collaborator failures all return an
      error ToolResult; execute() never raises
    - Exactly one ToolResult per call
    - Every failure is logged with tool name and error code
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError

from qdrant_mcp.core.domain_types import ToolName, ToolResult, resolve_tool_name
from qdrant_mcp.core.errors import (
    ErrorContext, QdrantMcpError, ToolValidationError, UnknownToolError,
)
from qdrant_mcp.core.repository_protocols import EmbeddingProvider, VectorStore
from qdrant_mcp.schemas.tools import ToolArgs
from qdrant_mcp.services.define_tools import TOOL_DEFINITIONS, ToolDefinition
from qdrant_mcp.services.handle_collections import CollectionHandlers
from qdrant_mcp.services.handle_search import SearchHandlers
from qdrant_mcp.services.handle_store import StoreHandlers

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[Any]]


class ToolDispatch:
    """Routes tool name -> handler. Explicit registration, no auto-discovery."""

    def __init__(
        self,
        embedder: EmbeddingProvider,
        store: VectorStore,
        collection: str,
        tool_prefix: str = "",
    ):
        self._prefix = tool_prefix
        writes = StoreHandlers(embedder, store, collection)
        search = SearchHandlers(embedder, store, collection)
        collections = CollectionHandlers(store)

        self._handlers: dict[ToolName, Handler] = {
            # Writes
            ToolName.STORE: writes.store_information,
            ToolName.BATCH_STORE: writes.batch_store,

            # Search
            ToolName.FIND: search.find,
            ToolName.HYBRID_SEARCH: search.hybrid_search,
            ToolName.FILTERED_SEARCH: search.filtered_search,

            # Collections
            ToolName.COLLECTION_STATS: collections.collection_stats,
            ToolName.LIST_COLLECTIONS: collections.list_collections,
        }

    async def execute(self, tool_name: str, arguments: Any = None) -> ToolResult:
        """Validate, run and map the outcome of one tool call."""
        name = resolve_tool_name(tool_name, self._prefix)
        if name is None:
            error = UnknownToolError(tool_name, ErrorContext(tool_name=tool_name))
            self._log_failure(tool_name, error)
            return ToolResult.failure(error.message, error.code)

        definition = TOOL_DEFINITIONS[name]
        try:
            args = _validate_arguments(definition, tool_name, arguments)
            payload = await self._handlers[name](args)
        except QdrantMcpError as e:
            e.context.tool_name = tool_name
            self._log_failure(tool_name, e)
            return ToolResult.failure(
                f"Error {definition.error_action}: {e.message}", e.code,
            )
        except Exception as e:
            logger.error(
                f"Unexpected error in tool '{tool_name}': {e}",
                extra={"tool_name": tool_name, "error_code": "INTERNAL_ERROR"},
                exc_info=True,
            )
            return ToolResult.failure(
                f"Error {definition.error_action}: {e}", "INTERNAL_ERROR",
            )
        return ToolResult.ok(payload)

    def _log_failure(self, tool_name: str, error: QdrantMcpError) -> None:
        logger.warning(
            f"Tool '{tool_name}' failed: {error.message}",
            extra={"tool_name": tool_name, "error_code": error.code},
        )


def _validate_arguments(
    definition: ToolDefinition, tool_name: str, arguments: Any,
) -> ToolArgs:
    """Parse arguments with the tool's model or raise ToolValidationError."""
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        raise ToolValidationError(
            "Invalid arguments: arguments must be an object", field="arguments",
            context=ErrorContext(tool_name=tool_name),
        )
    try:
        return definition.args_model.model_validate(arguments)
    except ValidationError as e:
        details = [
            f"{'.'.join(str(loc) for loc in err['loc']) or 'arguments'}: {err['msg']}"
            for err in e.errors()
        ]
        first_field = ".".join(str(loc) for loc in e.errors()[0]["loc"]) if e.errors() else ""
        raise ToolValidationError(
            f"Invalid arguments: {'; '.join(details)}",
            field=first_field or "arguments",
            context=ErrorContext(tool_name=tool_name),
        ) from e
