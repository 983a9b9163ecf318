"""
Session and routing engine: turns inbound client events into fanout
"""

import asyncio
from typing import Any, Callable, Dict, Optional
from .connection_manager import ConnectionManager
from .constants import DEFAULT_ROOM, ERROR_MESSAGES
from .history import RoomHistoryStore
from .logger import get_logger, log_security_event, log_connection_event, log_message_event
from .models import ChatMessage, PrivateMessage, RoomInfo, ErrorKind, HandlerError, now_ms
from .presence import PresenceRegistry
from .rate_limiter import RateLimiter
from .validators import sanitize_input, validate_username, validate_json_payload

logger = get_logger()

class SessionEngine:
    """
    Owns presence, history and rate limiting for every connection.

    All shared state is touched only under one asyncio.Lock, so a username
    check and the registration it guards are atomic, and for a given room
    the history append order is the order every member sees broadcasts in.

    Handlers return None on success (including silent no-ops) or a
    HandlerError, which dispatch() turns into an `error` event for the
    offending connection only.
    """

    def __init__(
        self,
        connections: Optional[ConnectionManager] = None,
        presence: Optional[PresenceRegistry] = None,
        history: Optional[RoomHistoryStore] = None,
        rate_limiter: Optional[RateLimiter] = None,
        clock: Callable[[], int] = now_ms
    ):
        self.connections = connections or ConnectionManager()
        self.presence = presence or PresenceRegistry()
        self.history = history or RoomHistoryStore()
        self.rate_limiter = rate_limiter or RateLimiter(clock=clock)
        self._clock = clock
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Transport entry points
    # ------------------------------------------------------------------

    async def connect(self, connection_id: str, websocket: Any):
        """Register a freshly accepted socket and tell it its id"""
        async with self._lock:
            self.connections.connect(connection_id, websocket)
            await self.connections.send(connection_id, "connected", {"connectionId": connection_id})

    async def dispatch(self, connection_id: str, payload: Any) -> Optional[HandlerError]:
        """
        Route one decoded inbound frame to its handler

        Never raises: validation failures and unexpected exceptions are
        reported to the sender as an `error` event.

        Args:
            connection_id: Connection the frame arrived on
            payload: Decoded JSON frame

        Returns:
            The error reported to the client, if any
        """
        is_valid, error_msg = validate_json_payload(payload)
        if not is_valid:
            error = HandlerError(ErrorKind.VALIDATION, error_msg)
        else:
            try:
                error = await self._route(connection_id, payload)
            except Exception:
                logger.exception(f"Handler {payload.get('type')} failed for {connection_id}")
                error = HandlerError(ErrorKind.INTERNAL, ERROR_MESSAGES["internal"])

        if error is not None:
            await self.send_error(connection_id, error)
        return error

    async def _route(self, connection_id: str, payload: Dict[str, Any]) -> Optional[HandlerError]:
        event_type = payload["type"]

        if event_type == "join":
            return await self.join(connection_id, payload.get("username"), payload.get("room"))
        elif event_type == "chat_message":
            return await self.chat_message(connection_id, payload.get("message"))
        elif event_type == "private_message":
            return await self.private_message(
                connection_id, payload.get("message"), payload.get("targetConnectionId")
            )
        elif event_type == "typing":
            return await self.typing(connection_id, payload.get("isTyping"))
        elif event_type == "change_room":
            return await self.change_room(connection_id, payload.get("room"))
        elif event_type == "get_users":
            return await self.get_users(connection_id)
        elif event_type == "get_rooms":
            return await self.get_rooms(connection_id)

        return HandlerError(ErrorKind.VALIDATION, ERROR_MESSAGES["unknown_event"].format(event_type=sanitize_input(event_type)))

    async def send_error(self, connection_id: str, error: HandlerError):
        if error.kind in (ErrorKind.RATE_LIMIT, ErrorKind.CONFLICT):
            log_security_event(f"{error.kind.value}_rejected", {"connection_id": connection_id})
        elif error.kind is ErrorKind.INTERNAL:
            logger.error(f"Internal error reported to {connection_id}")
        else:
            logger.info(f"Rejected event from {connection_id}: {error.message}")

        await self.connections.send(connection_id, "error", {"message": error.message})

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def join(self, connection_id: str, username: Any, room: Any) -> Optional[HandlerError]:
        """
        Join a room: validate, register, replay history and announce

        Args:
            connection_id: Joining connection
            username: Requested username (untrusted)
            room: Requested room (untrusted, defaults to "general")
        """
        async with self._lock:
            if connection_id in self.presence:
                return HandlerError(ErrorKind.VALIDATION, ERROR_MESSAGES["already_joined"])

            is_valid, error_msg = validate_username(username)
            if not is_valid:
                return HandlerError(ErrorKind.VALIDATION, error_msg)

            clean_username = sanitize_input(username)
            clean_room = sanitize_input(room) or DEFAULT_ROOM

            if not self.presence.is_username_available(clean_username, clean_room):
                return HandlerError(ErrorKind.CONFLICT, ERROR_MESSAGES["username_taken"])

            self.connections.join_channel(connection_id, clean_room)
            self.presence.add(connection_id, clean_username, clean_room)
            log_connection_event(connection_id, clean_username, clean_room, "join")

            await self._send_history(connection_id, clean_room)

            notice = ChatMessage.system(f"{clean_username} joined the chat", clean_room, self._clock())
            await self.connections.broadcast(clean_room, "user_joined", notice.to_dict())

            users_count = await self._broadcast_users_list(clean_room)

            await self.connections.send(connection_id, "join_success", {
                "username": clean_username,
                "room": clean_room,
                "usersCount": users_count
            })
            return None

    async def chat_message(self, connection_id: str, message: Any) -> Optional[HandlerError]:
        """Post a message to the sender's room, including the sender"""
        async with self._lock:
            user = self.presence.get(connection_id)
            if user is None:
                return HandlerError(ErrorKind.VALIDATION, ERROR_MESSAGES["not_joined"])

            if self.rate_limiter.is_rate_limited(connection_id):
                return HandlerError(ErrorKind.RATE_LIMIT, ERROR_MESSAGES["rate_limit"])

            text = sanitize_input(message)
            if not text:
                # Nothing to send is not an error
                return None

            self.rate_limiter.record_attempt(connection_id)

            chat_message = ChatMessage.from_user(user, text, self._clock())
            self.history.append(user.room, chat_message)
            recipients = await self.connections.broadcast(user.room, "received_message", chat_message.to_dict())

            log_message_event("broadcast", user.username, user.room, f"length={len(text)} recipients={recipients}")
            return None

    async def private_message(self, connection_id: str, message: Any, target_connection_id: Any) -> Optional[HandlerError]:
        """
        Deliver a direct message to one connection and echo it to the sender

        The recipient may be in any room. Shares the sender's rate limit
        quota with room messages.
        """
        async with self._lock:
            sender = self.presence.get(connection_id)
            if sender is None:
                return HandlerError(ErrorKind.VALIDATION, ERROR_MESSAGES["not_joined"])

            recipient = self.presence.get(target_connection_id) if isinstance(target_connection_id, str) else None
            if recipient is None:
                return HandlerError(ErrorKind.NOT_FOUND, ERROR_MESSAGES["recipient_not_found"])

            if self.rate_limiter.is_rate_limited(connection_id):
                return HandlerError(ErrorKind.RATE_LIMIT, ERROR_MESSAGES["rate_limit"])

            text = sanitize_input(message)
            self.rate_limiter.record_attempt(connection_id)

            private_message = PrivateMessage(
                from_username=sender.username,
                to_username=recipient.username,
                message=text,
                timestamp=self._clock(),
                from_connection_id=sender.connection_id,
                to_connection_id=recipient.connection_id
            )
            payload = private_message.to_dict()

            await self.connections.send(recipient.connection_id, "private_message_received", payload)
            await self.connections.send(connection_id, "private_message_sent", payload)

            log_message_event("private", sender.username, sender.room, f"to={recipient.username} length={len(text)}")
            return None

    async def typing(self, connection_id: str, is_typing: Any) -> Optional[HandlerError]:
        """Tell the other members of the room whether the user is typing"""
        async with self._lock:
            user = self.presence.get(connection_id)
            if user is None:
                return None

            await self.connections.broadcast(user.room, "user_typing", {
                "username": user.username,
                "isTyping": is_typing is True
            }, exclude=connection_id)
            return None

    async def change_room(self, connection_id: str, room: Any) -> Optional[HandlerError]:
        """
        Move a joined user to another room

        Username uniqueness is not re-checked in the destination room.
        """
        async with self._lock:
            user = self.presence.get(connection_id)
            if user is None:
                return None

            new_room = sanitize_input(room) or DEFAULT_ROOM
            old_room = user.room
            if new_room == old_room:
                return None

            self.connections.leave_channel(connection_id, old_room)
            # The old room's user list must no longer include the mover
            self.presence.change_room(connection_id, new_room)

            left_notice = ChatMessage.system(f"{user.username} left the room", old_room, self._clock())
            await self.connections.broadcast(old_room, "user_left", left_notice.to_dict())
            await self._broadcast_users_list(old_room)

            self.connections.join_channel(connection_id, new_room)
            log_connection_event(connection_id, user.username, f"{old_room}->{new_room}", "change_room")

            await self._send_history(connection_id, new_room)

            joined_notice = ChatMessage.system(f"{user.username} joined the room", new_room, self._clock())
            await self.connections.broadcast(new_room, "user_joined", joined_notice.to_dict())

            users_count = await self._broadcast_users_list(new_room)

            await self.connections.send(connection_id, "room_changed", {
                "room": new_room,
                "usersCount": users_count
            })
            return None

    async def disconnect(self, connection_id: str) -> Optional[HandlerError]:
        """
        Purge every trace of a connection and notify its room

        Safe to call for connections that never joined and to call twice.
        """
        async with self._lock:
            self.connections.disconnect(connection_id)

            user = self.presence.remove(connection_id)
            if user is not None:
                notice = ChatMessage.system(f"{user.username} left the chat", user.room, self._clock())
                await self.connections.broadcast(user.room, "user_left", notice.to_dict())
                await self._broadcast_users_list(user.room)
                log_connection_event(connection_id, user.username, user.room, "leave")

            self.rate_limiter.remove(connection_id)
            return None

    async def get_users(self, connection_id: str) -> Optional[HandlerError]:
        """Send the caller its current room's user list"""
        async with self._lock:
            user = self.presence.get(connection_id)
            if user is None:
                return None

            users = [member.to_dict() for member in self.presence.users_in_room(user.room)]
            await self.connections.send(connection_id, "users_list", users)
            return None

    async def get_rooms(self, connection_id: str) -> Optional[HandlerError]:
        """Send the caller the directory of occupied rooms; no join required"""
        async with self._lock:
            rooms = [
                RoomInfo(name=name, users_count=count).to_dict()
                for name, count in self.presence.room_counts().items()
            ]
            await self.connections.send(connection_id, "rooms_list", rooms)
            return None

    # ------------------------------------------------------------------
    # Helpers (caller holds the lock)
    # ------------------------------------------------------------------

    async def _send_history(self, connection_id: str, room: str):
        history = [message.to_dict() for message in self.history.get(room)]
        await self.connections.send(connection_id, "message_history", history)

    async def _broadcast_users_list(self, room: str) -> int:
        users = [member.to_dict() for member in self.presence.users_in_room(room)]
        await self.connections.broadcast(room, "users_list", users)
        return len(users)

    async def get_stats(self) -> Dict[str, int]:
        """
        Get engine statistics

        Returns:
            Dictionary with connection, presence and history counters
        """
        async with self._lock:
            return {
                "connections": self.connections.connection_count(),
                "joined_users": len(self.presence),
                "occupied_rooms": len(self.presence.room_counts()),
                "history_rooms": self.history.room_count(),
                "stored_messages": self.history.message_count(),
                "rate_windows": self.rate_limiter.window_count()
            }
