"""
Presence registry: which connection is which user, in which room
"""

from typing import Dict, List, Optional
from .models import User

class PresenceRegistry:
    """
    Authoritative mapping of connection id to joined user.

    Rooms are not stored separately; per-room views are derived by scanning
    the users. Callers must not rely on the order of users_in_room().
    """

    def __init__(self):
        # connection_id -> User
        self._users: Dict[str, User] = {}

    def add(self, connection_id: str, username: str, room: str) -> User:
        """Insert or overwrite the user for a connection"""
        user = User(connection_id=connection_id, username=username, room=room)
        self._users[connection_id] = user
        return user

    def get(self, connection_id: str) -> Optional[User]:
        return self._users.get(connection_id)

    def remove(self, connection_id: str) -> Optional[User]:
        """Delete and return the user, or None if the connection never joined"""
        return self._users.pop(connection_id, None)

    def change_room(self, connection_id: str, room: str) -> Optional[User]:
        """Move an existing user to another room in place"""
        user = self._users.get(connection_id)
        if user is not None:
            user.room = room
        return user

    def users_in_room(self, room: str) -> List[User]:
        return [user for user in self._users.values() if user.room == room]

    def is_username_available(self, username: str, room: str) -> bool:
        """
        Check room-scoped username uniqueness

        Args:
            username: Sanitized username
            room: Room name

        Returns:
            True if nobody in the room uses this username
        """
        for user in self._users.values():
            if user.username == username and user.room == room:
                return False
        return True

    def room_counts(self) -> Dict[str, int]:
        """Number of users per room, over every registered user"""
        counts: Dict[str, int] = {}
        for user in self._users.values():
            counts[user.room] = counts.get(user.room, 0) + 1
        return counts

    def __len__(self) -> int:
        return len(self._users)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._users
