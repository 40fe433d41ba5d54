import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable
from uuid import uuid4

from fastapi import WebSocket
from fastapi.websockets import WebSocketState

from royale.core.metrics import WEBSOCKET_CONNECTIONS, record_message

logger = logging.getLogger(__name__)

_CLOSE = object()


@dataclass
class ConnectionInfo:
    """Information about a WebSocket connection."""

    websocket: WebSocket
    connection_id: str
    outbox: asyncio.Queue = field(default_factory=asyncio.Queue)
    writer: asyncio.Task | None = None
    closing: bool = False

    @property
    def is_open(self) -> bool:
        return (
            not self.closing
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )


class ConnectionRegistry:
    """Tracks open WebSocket connections and delivers messages to them.

    Delivery is best-effort: each connection has its own outbox drained by a
    writer task, so a slow socket never holds up the caller or other
    connections, and a closed socket is simply skipped.
    """

    def __init__(self):
        self._connections: dict[str, ConnectionInfo] = {}

    async def register(self, websocket: WebSocket) -> str:
        """Accept a new WebSocket connection and assign it an id."""
        await websocket.accept()
        connection_id = self._new_id()
        conn = ConnectionInfo(websocket=websocket, connection_id=connection_id)
        conn.writer = asyncio.create_task(self._write_loop(conn))
        self._connections[connection_id] = conn
        WEBSOCKET_CONNECTIONS.inc()
        logger.info(f"Connection {connection_id} opened")
        return connection_id

    async def unregister(self, connection_id: str) -> None:
        """Forget a connection and stop its writer."""
        conn = self._connections.pop(connection_id, None)
        if conn is None:
            return
        WEBSOCKET_CONNECTIONS.dec()
        conn.closing = True
        if conn.writer and not conn.writer.done():
            conn.writer.cancel()
            try:
                await conn.writer
            except asyncio.CancelledError:
                pass
        logger.info(f"Connection {connection_id} closed")

    def send(self, connection_id: str, message: dict[str, Any]) -> bool:
        """Queue a message for one connection; dropped if it is not open."""
        conn = self._connections.get(connection_id)
        if conn is None or not conn.is_open:
            return False
        conn.outbox.put_nowait(message)
        return True

    def broadcast(
        self,
        predicate: Callable[[str], bool] | None,
        message: dict[str, Any],
    ) -> int:
        """Queue a message for every open connection whose id satisfies predicate."""
        sent_count = 0
        for connection_id in list(self._connections):
            if predicate is not None and not predicate(connection_id):
                continue
            if self.send(connection_id, message):
                sent_count += 1
        return sent_count

    def close(self, connection_id: str, code: int = 1000) -> None:
        """Close a connection once everything already queued has been sent."""
        conn = self._connections.get(connection_id)
        if conn is None or conn.closing:
            return
        conn.outbox.put_nowait((_CLOSE, code))
        conn.closing = True

    def close_all(self, code: int = 1000) -> None:
        for connection_id in list(self._connections):
            self.close(connection_id, code)

    def get_connection_count(self) -> int:
        """Get total number of connections."""
        return len(self._connections)

    def _new_id(self) -> str:
        while True:
            connection_id = uuid4().hex
            if connection_id not in self._connections:
                return connection_id

    async def _write_loop(self, conn: ConnectionInfo) -> None:
        websocket = conn.websocket
        while True:
            item = await conn.outbox.get()
            if isinstance(item, tuple) and item[0] is _CLOSE:
                try:
                    await websocket.close(code=item[1])
                except (RuntimeError, OSError) as e:
                    logger.debug(f"Close failed for {conn.connection_id}: {e}")
                return

            if websocket.client_state != WebSocketState.CONNECTED:
                continue
            try:
                await websocket.send_json(item)
                record_message("out", item.get("state", "unknown"))
            except Exception as e:
                logger.warning(f"Dropping connection {conn.connection_id} after send failure: {e}")
                conn.closing = True
                return
