"""
Input sanitization and validation for untrusted client fields
"""

from typing import Any, Tuple
from .constants import (
    HTML_ESCAPES,
    INBOUND_EVENTS,
    MAX_MESSAGE_LENGTH,
    MAX_USERNAME_LENGTH,
    MIN_USERNAME_LENGTH,
    ERROR_MESSAGES
)
from .logger import log_security_event

def sanitize_input(value: Any) -> str:
    """
    Escape, trim and bound a text field coming from a client

    Non-string input yields an empty string. Truncation happens after
    escaping, so an entity at the boundary may be cut short.

    Args:
        value: Raw field value

    Returns:
        Sanitized text, at most MAX_MESSAGE_LENGTH characters
    """
    if not isinstance(value, str):
        return ""

    sanitized = value
    for char, entity in HTML_ESCAPES:
        sanitized = sanitized.replace(char, entity)

    return sanitized.strip()[:MAX_MESSAGE_LENGTH]

def validate_username(username: Any) -> Tuple[bool, str]:
    """
    Check the length bounds of a raw username

    Bounds apply to the trimmed text as typed, before escaping, so names
    containing quotes or slashes get the same budget as any other. Escaping
    never shortens text, so a name that passes also sanitizes to at least
    MIN_USERNAME_LENGTH characters.

    Args:
        username: Username as received from the client

    Returns:
        Tuple of (is_valid, error_message)
    """
    length = len(username.strip()) if isinstance(username, str) else 0
    if length < MIN_USERNAME_LENGTH or length > MAX_USERNAME_LENGTH:
        log_security_event("invalid_username_length", {"length": length})
        return False, ERROR_MESSAGES["invalid_username"]

    return True, ""

def validate_json_payload(payload: Any) -> Tuple[bool, str]:
    """
    Validate the envelope of an inbound frame

    Args:
        payload: Decoded JSON frame

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(payload, dict):
        log_security_event("invalid_payload_type", {"payload_type": type(payload).__name__})
        return False, ERROR_MESSAGES["invalid_json"]

    event_type = payload.get("type")
    if not isinstance(event_type, str):
        log_security_event("missing_event_type", {"keys": sorted(payload.keys())})
        return False, ERROR_MESSAGES["invalid_json"]

    if event_type not in INBOUND_EVENTS:
        log_security_event("unknown_event_type", {"event_type": event_type[:50]})
        return False, ERROR_MESSAGES["unknown_event"].format(event_type=sanitize_input(event_type)[:50])

    return True, ""
