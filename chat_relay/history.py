"""
Bounded per-room message history
"""

from collections import deque
from typing import Deque, Dict, List
from .constants import HISTORY_CAPACITY
from .models import ChatMessage

class RoomHistoryStore:
    """Keeps the most recent broadcast messages of each room, oldest first"""

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        self.capacity = capacity
        # room -> FIFO of messages; rooms are never removed
        self._buffers: Dict[str, Deque[ChatMessage]] = {}

    def append(self, room: str, message: ChatMessage):
        """
        Append a message, evicting the oldest one when the room is full

        Args:
            room: Room name
            message: Broadcast message to retain
        """
        buffer = self._buffers.get(room)
        if buffer is None:
            buffer = deque(maxlen=self.capacity)
            self._buffers[room] = buffer
        buffer.append(message)

    def get(self, room: str) -> List[ChatMessage]:
        """Return a copy of the room's history; empty for unknown rooms"""
        return list(self._buffers.get(room, ()))

    def room_count(self) -> int:
        return len(self._buffers)

    def message_count(self) -> int:
        return sum(len(buffer) for buffer in self._buffers.values())
