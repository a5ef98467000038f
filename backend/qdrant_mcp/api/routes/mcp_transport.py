"""MCP SSE Transport - stream establishment and out-of-band request delivery.

Invariants:
    - GET {sse_path} opens one session, allocated only once the body starts
      streaming; the first event names the endpoint (with sessionId) that the
      client must POST its requests to
    - The stream is the only reader of its session's channel
    - The session is closed when the stream ends for any reason (client
      disconnect, server shutdown, cancellation)
    - POST {messages_path}: 400 without sessionId, 404 for an unknown or closed
      session, 400 for a non-JSON body, otherwise 202 and the response arrives
      on the stream
    - A batch resolves its session once; every frame is routed to that session
"""

import asyncio
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import PlainTextResponse, StreamingResponse

from qdrant_mcp.api.dependencies import get_session_manager
from qdrant_mcp.core.errors import MalformedFrameError, ServerShuttingDownError
from qdrant_mcp.core.wire_format import format_sse_event
from qdrant_mcp.services.session_manager import SessionManager

logger = logging.getLogger(__name__)

# Prevent proxy/browser buffering of streamed events
_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


async def session_event_stream(
    manager: SessionManager,
    messages_endpoint: str,
    keepalive: float | None = None,
) -> AsyncIterator[str]:
    """SSE body for one session: endpoint event, then result frames until close.

    The session is opened on the first iteration, so a response that never
    starts streaming never registers one.
    """
    try:
        session = manager.open_session()
    except ServerShuttingDownError:
        return
    logger.info(
        f"Established SSE stream with session ID: {session.id}",
        extra={"session_id": session.id},
    )
    try:
        yield format_sse_event(
            "endpoint", f"{messages_endpoint}?sessionId={session.id}",
        )
        async for chunk in session.stream(keepalive):
            yield chunk
    except asyncio.CancelledError:
        logger.info(
            f"Client disconnected from stream (session={session.id})",
            extra={"session_id": session.id},
        )
        raise
    finally:
        manager.close_session(session.id)


def create_router(
    sse_path: str = "/mcp",
    messages_path: str = "/messages",
    keepalive_seconds: float | None = 15.0,
) -> APIRouter:
    """Transport routes bound to the configured paths."""
    router = APIRouter(tags=["mcp"])

    async def open_stream(
        request: Request,
        manager: SessionManager = Depends(get_session_manager),
    ):
        """Establish the SSE stream; its session is allocated when streaming starts."""
        if not manager.accepting:
            raise ServerShuttingDownError()
        root_path = request.scope.get("root_path", "")
        return StreamingResponse(
            session_event_stream(
                manager, f"{root_path}{messages_path}", keepalive_seconds,
            ),
            media_type="text/event-stream",
            headers=_SSE_HEADERS,
        )

    async def post_message(
        request: Request,
        session_id: str | None = Query(None, alias="sessionId"),
        manager: SessionManager = Depends(get_session_manager),
    ):
        """Accept one JSON-RPC frame (or batch) for a session."""
        session = manager.get_session(session_id)
        try:
            body = await request.json()
        except ValueError as e:
            raise MalformedFrameError(str(e)) from e
        frames = body if isinstance(body, list) and body else [body]
        for frame in frames:
            manager.submit(session, frame)
        return PlainTextResponse("Accepted", status_code=status.HTTP_202_ACCEPTED)

    router.add_api_route(sse_path, open_stream, methods=["GET"])
    router.add_api_route(messages_path, post_message, methods=["POST"])
    return router
