"""
Data models for the chat relay
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any
import time

def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds"""
    return int(time.time() * 1000)

@dataclass
class User:
    """Presence record for one joined connection"""
    connection_id: str
    username: str
    room: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "connectionId": self.connection_id
        }

@dataclass(frozen=True)
class ChatMessage:
    """Room-scoped message: a user post or a system notice"""
    type: str
    message: str
    timestamp: int
    room: str
    username: Optional[str] = None
    connection_id: Optional[str] = None

    @classmethod
    def system(cls, message: str, room: str, timestamp: int) -> "ChatMessage":
        return cls(type="system", message=message, timestamp=timestamp, room=room)

    @classmethod
    def from_user(cls, user: User, message: str, timestamp: int) -> "ChatMessage":
        return cls(
            type="user",
            message=message,
            timestamp=timestamp,
            room=user.room,
            username=user.username,
            connection_id=user.connection_id
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        data: Dict[str, Any] = {
            "type": self.type,
            "message": self.message,
            "timestamp": self.timestamp,
            "room": self.room
        }
        if self.username is not None:
            data["username"] = self.username
        if self.connection_id is not None:
            data["connectionId"] = self.connection_id
        return data

@dataclass(frozen=True)
class PrivateMessage:
    """Direct message between two connections; never stored"""
    from_username: str
    to_username: str
    message: str
    timestamp: int
    from_connection_id: str
    to_connection_id: str
    type: str = "private"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "type": self.type,
            "fromUsername": self.from_username,
            "toUsername": self.to_username,
            "message": self.message,
            "timestamp": self.timestamp,
            "fromConnectionId": self.from_connection_id,
            "toConnectionId": self.to_connection_id
        }

@dataclass
class RoomInfo:
    """Room directory entry"""
    name: str
    users_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "usersCount": self.users_count
        }

class ErrorKind(str, Enum):
    """Categories of handler failures surfaced to clients"""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMIT = "rate_limit"
    INTERNAL = "internal"

@dataclass(frozen=True)
class HandlerError:
    """Failure returned by an event handler instead of raising"""
    kind: ErrorKind
    message: str
