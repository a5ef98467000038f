"""Session Manager - session table, request routing and ordered single-writer delivery.

Invariants:
    - At most one live output channel per session id; ids are never reused while open
    - The session table is mutated only under the table lock, and the lock is never
      held across an await (open/close are safe from any task or thread)
    - Each session's channel has exactly one reader (its SSE stream); frames are
      serialized whole before being queued, so frames never interleave on the wire
    - Frames are delivered in completion order, not arrival order
    - dispatch() never waits for the handler; each frame runs in its own task
    - A closed session rejects new frames (SessionNotFoundError) and silently
      drops results that finish after the close
    - Delivery failures close only the affected session
    - shutdown() first stops accepting sessions, then closes every open one;
      one failing close never prevents the others
"""

import asyncio
import logging
import threading
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from qdrant_mcp.core.domain_types import SessionId
from qdrant_mcp.core.errors import (
    DeliveryError,
    MissingSessionIdError,
    ServerShuttingDownError,
    SessionClosedError,
    SessionNotFoundError,
)
from qdrant_mcp.core.wire_format import (
    INTERNAL_ERROR,
    KEEPALIVE_COMMENT,
    error_response,
    extract_request_id,
    format_message_event,
)

logger = logging.getLogger(__name__)

FrameHandler = Callable[[Any], Awaitable[dict[str, Any] | None]]

_CLOSED = object()


class Session:
    """One client's output channel: a bounded queue drained by a single SSE stream."""

    def __init__(
        self,
        session_id: SessionId,
        queue_size: int = 256,
        delivery_timeout: float = 10.0,
    ):
        self.id = session_id
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._delivery_timeout = delivery_timeout
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, message: dict[str, Any]) -> None:
        """Queue one complete frame for the stream.

        Raises SessionClosedError if the channel is gone and DeliveryError if
        the reader does not make room within the delivery timeout.
        """
        if self._closed:
            raise SessionClosedError(self.id)
        chunk = format_message_event(message)
        try:
            await asyncio.wait_for(
                self._queue.put(chunk), timeout=self._delivery_timeout,
            )
        except asyncio.TimeoutError:
            raise DeliveryError(self.id, "channel is not draining")

    async def stream(self, keepalive: float | None = None) -> AsyncIterator[str]:
        """Yield queued frames until the session closes.

        When keepalive is set, an SSE comment is yielded after that many idle
        seconds so intermediaries keep the connection open.
        """
        while True:
            try:
                if keepalive:
                    item = await asyncio.wait_for(self._queue.get(), timeout=keepalive)
                else:
                    item = await self._queue.get()
            except asyncio.TimeoutError:
                yield KEEPALIVE_COMMENT
                continue
            if item is _CLOSED:
                return
            yield item

    def close(self) -> bool:
        """Release the channel. Pending frames are discarded. Idempotent."""
        if self._closed:
            return False
        self._closed = True
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
        self._queue.put_nowait(_CLOSED)
        return True


class SessionManager:
    """Owns the session table and routes request frames to the frame handler."""

    def __init__(
        self,
        handler: FrameHandler,
        queue_size: int = 256,
        delivery_timeout: float = 10.0,
    ):
        self._handler = handler
        self._queue_size = queue_size
        self._delivery_timeout = delivery_timeout
        self._sessions: dict[SessionId, Session] = {}
        self._lock = threading.Lock()
        self._accepting = True
        self._tasks: set[asyncio.Task] = set()

    @property
    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    @property
    def accepting(self) -> bool:
        return self._accepting

    def has_session(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def open_session(self) -> Session:
        """Allocate a fresh id and register its channel."""
        with self._lock:
            if not self._accepting:
                raise ServerShuttingDownError()
            session_id = SessionId(str(uuid.uuid4()))
            while session_id in self._sessions:
                session_id = SessionId(str(uuid.uuid4()))
            session = Session(
                session_id,
                queue_size=self._queue_size,
                delivery_timeout=self._delivery_timeout,
            )
            self._sessions[session_id] = session
        logger.info(
            f"Session opened: {session_id}", extra={"session_id": session_id},
        )
        return session

    def get_session(self, session_id: str | None) -> Session:
        """Look up an open session or raise the matching framing error."""
        if not session_id:
            raise MissingSessionIdError()
        with self._lock:
            session = self._sessions.get(SessionId(session_id))
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def dispatch(self, session_id: str | None, frame: Any) -> asyncio.Task:
        """Route one request frame; the result is delivered on the session's channel.

        Returns the processing task without awaiting it. Must be called from
        within the running event loop.
        """
        return self.submit(self.get_session(session_id), frame)

    def submit(self, session: Session, frame: Any) -> asyncio.Task:
        """Route one frame for an already resolved session.

        Frames of one POSTed batch all go through here, so a close midway
        through the batch cannot turn the accepted request into a 404. Results
        for a session closed in the meantime are discarded on delivery.
        """
        task = asyncio.get_running_loop().create_task(
            self._process(session, frame),
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def close_session(self, session_id: str) -> None:
        """Remove the session and release its channel. Idempotent."""
        with self._lock:
            session = self._sessions.pop(SessionId(session_id), None)
        if session is not None and session.close():
            logger.info(
                f"Session closed: {session_id}", extra={"session_id": session_id},
            )

    async def shutdown(self) -> None:
        """Stop accepting sessions, close all open ones, cancel leftover work."""
        with self._lock:
            self._accepting = False
            sessions = list(self._sessions.values())
        logger.info(f"Shutting down {len(sessions)} open session(s)")
        for session in sessions:
            try:
                logger.info(
                    f"Closing transport for session {session.id}",
                    extra={"session_id": session.id},
                )
                self.close_session(session.id)
            except Exception as e:
                logger.error(
                    f"Error closing transport for session {session.id}: {e}",
                    extra={"session_id": session.id},
                    exc_info=True,
                )
        pending = [t for t in self._tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Session manager shutdown complete")

    async def _process(self, session: Session, frame: Any) -> None:
        try:
            response = await self._handler(frame)
        except Exception as e:
            logger.error(
                f"Frame handler failed: {e}",
                extra={"session_id": session.id},
                exc_info=True,
            )
            response = error_response(
                extract_request_id(frame), INTERNAL_ERROR, "Internal error",
            )
        if response is None:
            return
        await self._deliver(session, response)

    async def _deliver(self, session: Session, response: dict[str, Any]) -> None:
        if session.closed:
            logger.debug(
                "Discarding result for closed session",
                extra={"session_id": session.id},
            )
            return
        try:
            await session.send(response)
        except SessionClosedError:
            logger.debug(
                "Discarding result for closed session",
                extra={"session_id": session.id},
            )
        except DeliveryError as e:
            logger.warning(
                f"{e.message}; closing session",
                extra={"session_id": session.id, "error_code": e.code},
            )
            self.close_session(session.id)
