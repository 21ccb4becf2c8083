from __future__ import annotations
from typing import Any
from urllib.parse import urlsplit

# ========================================
#           INPUT VALIDATION HELPERS
# ========================================
"""
Helpers the codec and the discovery handshake call to decide whether
a decoded value is shaped the way the wire format promises.
"""

# Request identifiers are unsigned 64-bit on the wire
MAX_REQUEST_ID = 2 ** 64 - 1

_WS_SCHEMES = {"ws", "wss"}


def is_websocket_url(s: Any) -> bool:
    """
    returns True for 'ws://host/...' or 'wss://host/...' strings with a non-empty host.
    """
    if not isinstance(s, str):
        return False
    try:
        parts = urlsplit(s)
    except ValueError:
        return False
    return parts.scheme in _WS_SCHEMES and bool(parts.netloc)


def is_strict_int(value: Any) -> bool:
    """
    JSON integers only. bool is an int subclass in Python, so reject it explicitly.
    """
    return isinstance(value, int) and not isinstance(value, bool)


def is_direct_message_channel(channel_id: str) -> bool:
    """
    Direct message conversations use IDs starting with 'D' (e.g. 'D024BE91L').
    """
    return channel_id.startswith("D")
