"""Real-time delivery through whatever socket transport the app runs.

The WebSocket endpoint registers each live connection against its user. Emitting to a
user with no live connection is not an error; real-time delivery is a bonus
on top of the persisted notification.
"""

import asyncio
import threading
from collections import defaultdict

import structlog

logger = structlog.get_logger(__name__)


class ConnectionRegistry:
    """Live connections per user. A connection is any object with ``send(event, payload)``."""

    def __init__(self):
        self._lock = threading.Lock()
        self._connections: dict[str, list] = defaultdict(list)

    def register(self, user_id, connection) -> None:
        with self._lock:
            self._connections[str(user_id)].append(connection)

    def deregister(self, user_id, connection) -> None:
        with self._lock:
            live = self._connections.get(str(user_id), [])
            if connection in live:
                live.remove(connection)
            if not live:
                self._connections.pop(str(user_id), None)

    def is_online(self, user_id) -> bool:
        return bool(self._connections.get(str(user_id)))

    def emit(self, user_id, event: str, payload: dict) -> bool:
        """Send to every live connection of the user. True when at least one accepted it."""
        with self._lock:
            connections = list(self._connections.get(str(user_id), []))

        delivered = False
        for connection in connections:
            try:
                connection.send(event, payload)
                delivered = True
            except Exception as exc:
                logger.warning("Dropping broken realtime connection", user_id=str(user_id), error=str(exc))
                self.deregister(user_id, connection)
        return delivered


class BufferedConnection:
    """A connection that keeps what it was sent. Used for local runs and tests."""

    def __init__(self):
        self.messages: list[tuple[str, dict]] = []

    def send(self, event, payload):
        self.messages.append((event, payload))


class WebSocketConnection:
    """Bridges the registry's synchronous ``send`` onto a socket's event loop.

    ``send`` may be called from any thread. Messages are queued on the loop
    that owns the socket and written out by ``pump``.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self._outbox: asyncio.Queue = asyncio.Queue()

    def send(self, event, payload):
        if self._loop.is_closed():
            raise ConnectionError("Event loop closed")
        self._loop.call_soon_threadsafe(self._outbox.put_nowait, {"event": event, "data": payload})

    async def _forward(self, websocket) -> None:
        while True:
            message = await self._outbox.get()
            await websocket.send_json(message)

    async def pump(self, websocket) -> None:
        """Write queued messages until the client disconnects. Client frames are ignored."""
        forwarder = asyncio.create_task(self._forward(websocket))
        try:
            while (await websocket.receive())["type"] != "websocket.disconnect":
                pass
        finally:
            forwarder.cancel()
