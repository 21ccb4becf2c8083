
from __future__ import annotations

from enum import Enum
from typing import Set


class EventType(str, Enum):
    """RTM event types the client knows by name. Others still decode fine."""

    # Connection lifecycle
    HELLO = "hello"                      # First frame after a successful dial
    GOODBYE = "goodbye"                  # Server is about to close the socket
    RECONNECT_URL = "reconnect_url"      # Informational only, no reconnect support
    PING = "ping"
    PONG = "pong"
    ERROR = "error"

    # Messaging
    MESSAGE = "message"
    USER_TYPING = "user_typing"
    PRESENCE_CHANGE = "presence_change"

    # Channels
    CHANNEL_JOINED = "channel_joined"
    CHANNEL_LEFT = "channel_left"
    CHANNEL_CREATED = "channel_created"
    CHANNEL_RENAME = "channel_rename"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Check if string is a known event type."""
        try:
            cls(value)
            return True
        except ValueError:
            return False


# Key under which acknowledgements are dispatched by RealTimeSession.recv_loop
ACK_HANDLER_KEY = "ack"

# Event types the server uses to announce it is going away
CLOSING_EVENTS: Set[EventType] = {
    EventType.GOODBYE,
}
