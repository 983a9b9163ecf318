"""
Room-based chat relay
Presence, bounded room history, rate limiting and event routing
"""

from .models import User, ChatMessage, PrivateMessage, RoomInfo, ErrorKind, HandlerError
from .validators import sanitize_input, validate_username, validate_json_payload
from .rate_limiter import RateLimiter
from .history import RoomHistoryStore
from .presence import PresenceRegistry
from .connection_manager import ConnectionManager
from .session_engine import SessionEngine
from .constants import *
from .logger import (
    get_logger,
    log_security_event,
    log_connection_event,
    log_message_event,
    log_websocket_event,
    log_system_event
)

__all__ = [
    'User',
    'ChatMessage',
    'PrivateMessage',
    'RoomInfo',
    'ErrorKind',
    'HandlerError',
    'sanitize_input',
    'validate_username',
    'validate_json_payload',
    'RateLimiter',
    'RoomHistoryStore',
    'PresenceRegistry',
    'ConnectionManager',
    'SessionEngine',
    'get_logger',
    'log_security_event',
    'log_connection_event',
    'log_message_event',
    'log_websocket_event',
    'log_system_event'
]
