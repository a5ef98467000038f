"""Error Hierarchy - typed, categorized exceptions for every failure mode of the server.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Framing errors (missing/unknown session) never reach tool logic
    - Validation errors are raised before any collaborator call
    - Collaborator errors (embedding, vector store) carry the upstream message
    - to_response() produces the REST envelope used by the HTTP error handlers
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories, one per class of the error taxonomy."""
    PROTOCOL = "protocol"
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    EXTERNAL_API = "external_api"
    TIMEOUT = "timeout"
    DELIVERY = "delivery"
    UNAVAILABLE = "unavailable"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: str | None = None
    tool_name: str | None = None
    collection: str | None = None
    debug_info: dict[str, Any] | None = None


class QdrantMcpError(Exception):
    """Base exception for all server errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "session_id": self.context.session_id,
                    "tool_name": self.context.tool_name,
                    "collection": self.context.collection,
                },
            }
        }


# ─── Protocol-framing errors ─────────────────────────────────────

class MissingSessionIdError(QdrantMcpError):
    """Request frame arrived without a session identifier."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Missing sessionId parameter",
            "MISSING_SESSION_ID", ErrorCategory.PROTOCOL,
            ErrorSeverity.WARNING, context, 400,
        )


class SessionNotFoundError(QdrantMcpError):
    """Session identifier was never opened or is already closed."""
    def __init__(self, session_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.session_id = session_id
        super().__init__(
            "Session not found",
            "SESSION_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, ctx, 404,
        )
        self.session_id = session_id


class MalformedFrameError(QdrantMcpError):
    """Request body is not valid JSON."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Invalid message body: {message}",
            "MALFORMED_FRAME", ErrorCategory.PROTOCOL,
            ErrorSeverity.WARNING, context, 400,
        )


class ServerShuttingDownError(QdrantMcpError):
    """Session table is drained and accepts no new sessions."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Server is shutting down",
            "SHUTTING_DOWN", ErrorCategory.UNAVAILABLE,
            ErrorSeverity.WARNING, context, 503,
        )


# ─── Argument validation errors ──────────────────────────────────

class ToolValidationError(QdrantMcpError):
    """Tool arguments violate the tool's declared schema."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class UnknownToolError(QdrantMcpError):
    """Tool name is not registered."""
    def __init__(self, tool_name: str, context: ErrorContext | None = None):
        super().__init__(
            f"Tool '{tool_name}' does not exist.",
            "UNKNOWN_TOOL", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.tool_name = tool_name


# ─── Collaborator errors ─────────────────────────────────────────

class EmbeddingError(QdrantMcpError):
    """Embedding model failed or returned an unusable result."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "EMBEDDING_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 503,
        )


class VectorStoreError(QdrantMcpError):
    """Vector store rejected the request or could not be reached."""
    def __init__(
        self,
        message: str,
        operation: str,
        status_code: int | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "VECTOR_STORE_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 502,
        )
        self.operation = operation
        self.status_code = status_code


class VectorStoreTimeoutError(VectorStoreError):
    """Vector store call exceeded the configured timeout."""
    def __init__(self, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Vector store timeout during {operation}", operation,
            context=context,
        )
        self.code = "VECTOR_STORE_TIMEOUT"
        self.category = ErrorCategory.TIMEOUT
        self.http_status = 504


# ─── Channel delivery errors ─────────────────────────────────────

class SessionClosedError(QdrantMcpError):
    """Delivery attempted on a session whose channel is already closed."""
    def __init__(self, session_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.session_id = session_id
        super().__init__(
            f"Session '{session_id}' is closed",
            "SESSION_CLOSED", ErrorCategory.DELIVERY,
            ErrorSeverity.INFO, ctx, 410,
        )


class DeliveryError(QdrantMcpError):
    """Frame could not be handed to the channel in time."""
    def __init__(self, session_id: str, reason: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.session_id = session_id
        super().__init__(
            f"Delivery to session '{session_id}' failed: {reason}",
            "DELIVERY_FAILED", ErrorCategory.DELIVERY,
            ErrorSeverity.WARNING, ctx, 500,
        )
