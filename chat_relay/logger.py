"""
Logging configuration for the chat relay
"""

import logging
import sys
from typing import Optional
from .constants import LOG_LEVEL

class SecureFormatter(logging.Formatter):
    """Formatter that masks credential-looking fragments"""

    def format(self, record):
        message = super().format(record)
        sanitized = message.replace('password=', 'password=***')
        sanitized = sanitized.replace('token=', 'token=***')
        return sanitized

def get_logger(name: str = "chat_relay") -> logging.Logger:
    """
    Get a logger instance with the relay's formatting

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(logging.DEBUG)

        formatter = SecureFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)

        logger.addHandler(handler)
        logger.setLevel(LOG_LEVEL)

        # Keep relay output out of uvicorn's root handlers
        logger.propagate = False

    return logger

def log_security_event(event_type: str, details: dict, logger: Optional[logging.Logger] = None):
    """
    Log security-related events (rejections, throttling) with structured data

    Args:
        event_type: Type of security event
        details: Event details
        logger: Logger instance (optional)
    """
    if logger is None:
        logger = get_logger()

    logger.warning(f"SECURITY_EVENT: {event_type} | {details}")

def log_connection_event(connection_id: str, username: str, room: str, action: str):
    """
    Log presence changes (join/change_room/leave)

    Args:
        connection_id: Connection identifier
        username: User identifier
        room: Chat room
        action: Action (join/change_room/leave)
    """
    logger = get_logger()
    logger.info(f"CONNECTION_EVENT: {action} | conn={connection_id} | user={username} | room={room}")

def log_message_event(action: str, username: str, room: str, details: str = ""):
    """
    Log message routing events. Message bodies are never logged.

    Args:
        action: Action (broadcast/private/dropped)
        username: Sender username
        room: Chat room
        details: Additional details
    """
    logger = get_logger()
    logger.info(f"MESSAGE_EVENT: {action} | user={username} | room={room} | {details}")

def log_websocket_event(event_type: str, connection_id: str, details: str = ""):
    """
    Log WebSocket protocol events

    Args:
        event_type: Type of WebSocket event
        connection_id: Connection identifier
        details: Additional details
    """
    logger = get_logger()
    logger.debug(f"WEBSOCKET_EVENT: {event_type} | conn={connection_id} | {details}")

def log_system_event(event_type: str, details: str, level: str = "info"):
    """
    Log system-level events

    Args:
        event_type: Type of system event
        details: Event details
        level: Log level (info/warning/error)
    """
    logger = get_logger()
    log_message = f"SYSTEM_EVENT: {event_type} | {details}"

    if level == "warning":
        logger.warning(log_message)
    elif level == "error":
        logger.error(log_message)
    else:
        logger.info(log_message)
