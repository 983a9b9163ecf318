"""
Constants and environment-driven settings for the chat relay
"""

import os

# Server settings (overridable through the environment)
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Input limits
MAX_MESSAGE_LENGTH = 500
MIN_USERNAME_LENGTH = 2
MAX_USERNAME_LENGTH = 20
DEFAULT_ROOM = "general"

# Rate limiting: at most N messages per sliding window, per connection
RATE_LIMIT_MAX_MESSAGES = 10
RATE_LIMIT_WINDOW_MS = 10_000

# Seconds an outbound frame may wait on a slow client before it is dropped
SEND_TIMEOUT_SECONDS = 5.0

# Per-room history
HISTORY_CAPACITY = 100

# HTML-significant characters and their replacements, applied in order
HTML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#x27;"),
    ("/", "&#x2F;"),
)

# Inbound event types accepted from clients
INBOUND_EVENTS = (
    "join",
    "chat_message",
    "private_message",
    "typing",
    "change_room",
    "get_users",
    "get_rooms",
)

# Security headers
CORS_ORIGINS = ["*"]
CORS_ALLOW_CREDENTIALS = False

# Error messages
ERROR_MESSAGES = {
    "invalid_username": f"Username must be between {MIN_USERNAME_LENGTH} and {MAX_USERNAME_LENGTH} characters",
    "username_taken": "This username is already taken in this room",
    "already_joined": "Already joined; use change_room to switch rooms",
    "not_joined": "You must join a room first",
    "recipient_not_found": "Recipient not found",
    "rate_limit": "You are sending messages too quickly. Please wait.",
    "invalid_json": "Invalid JSON format",
    "unknown_event": "Unknown event type: {event_type}",
    "internal": "Internal server error",
}
