"""
Transport adapter: live WebSockets and their room channels
"""

import asyncio
import json
from typing import Any, Dict, Optional, Set
from .constants import SEND_TIMEOUT_SECONDS
from .logger import get_logger, log_security_event

logger = get_logger()

class ConnectionManager:
    """
    Tracks open sockets and channel membership, and frames outbound events.

    Channel membership is the delivery list for room fanout and is managed
    separately from presence. Outbound frames look like
    {"type": <event>, "data": <payload>}.

    A send that does not complete within send_timeout marks the socket as
    stalled: it is dropped from the socket table so later fanout skips it,
    and its channel membership stays until the connection disconnects.
    """

    def __init__(self, send_timeout: float = SEND_TIMEOUT_SECONDS):
        self.send_timeout = send_timeout
        # connection_id -> WebSocket
        self._sockets: Dict[str, Any] = {}
        # room -> connection ids subscribed to the room channel
        self._channels: Dict[str, Set[str]] = {}

    def connect(self, connection_id: str, websocket: Any):
        self._sockets[connection_id] = websocket

    def disconnect(self, connection_id: str):
        """Forget a socket and drop it from every channel"""
        self._sockets.pop(connection_id, None)
        for room in list(self._channels):
            self.leave_channel(connection_id, room)

    def join_channel(self, connection_id: str, room: str):
        self._channels.setdefault(room, set()).add(connection_id)

    def leave_channel(self, connection_id: str, room: str):
        members = self._channels.get(room)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._channels[room]

    def channel_members(self, room: str) -> Set[str]:
        return set(self._channels.get(room, ()))

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._sockets

    def connection_count(self) -> int:
        return len(self._sockets)

    async def send(self, connection_id: str, event: str, data: Any) -> bool:
        """
        Send one event to one connection

        Args:
            connection_id: Target connection
            event: Outbound event name
            data: JSON-serializable payload

        Returns:
            True if the frame was handed to the socket
        """
        websocket = self._sockets.get(connection_id)
        if websocket is None:
            return False

        try:
            await asyncio.wait_for(
                websocket.send_text(json.dumps({"type": event, "data": data})),
                timeout=self.send_timeout
            )
            return True
        except asyncio.TimeoutError:
            self._sockets.pop(connection_id, None)
            logger.error(f"Send of {event} to {connection_id} timed out, dropping socket")
            log_security_event("stalled_connection_dropped", {
                "recipient": connection_id,
                "event": event,
                "timeout_seconds": self.send_timeout
            })
            return False
        except Exception as e:
            # A dead socket must not break fanout to everyone else
            logger.error(f"Failed to send {event} to {connection_id}: {e}")
            log_security_event("message_send_failed", {
                "recipient": connection_id,
                "event": event,
                "error": str(e)
            })
            return False

    async def broadcast(self, room: str, event: str, data: Any, exclude: Optional[str] = None) -> int:
        """
        Send one event to every member of a room channel

        Args:
            room: Room channel
            event: Outbound event name
            data: JSON-serializable payload
            exclude: Connection to skip (typically the sender)

        Returns:
            Number of successful recipients
        """
        successful_sends = 0
        for connection_id in sorted(self._channels.get(room, ())):
            if connection_id == exclude:
                continue
            if await self.send(connection_id, event, data):
                successful_sends += 1
        return successful_sends
