from __future__ import annotations
from typing import Optional


class RTMError(Exception):
    """Base class for every error raised by the RTM client."""
    pass


class TransportError(RTMError):
    """Network, socket or HTTP status failure.

    ``stage`` names where it happened: discovery, dial, send, receive or lookup.
    The underlying exception (if any) is kept on ``cause`` and chained.
    """

    def __init__(self, stage: str, detail: str, cause: Optional[BaseException] = None):
        super().__init__(f"{stage} failed: {detail}")
        self.stage = stage
        self.detail = detail
        self.cause = cause


class DecodeError(RTMError):
    """Raised when a payload is malformed or does not match the expected schema."""
    pass


class RemoteRejection(RTMError):
    """Well-formed response in which the server reported failure."""

    def __init__(self, error: str, code: Optional[int] = None):
        if code is None:
            super().__init__(error)
        else:
            super().__init__(f"{error} (code {code})")
        self.error = error
        self.code = code


class SessionStateError(RTMError):
    """Operation is not valid in the session's current state."""

    def __init__(self, operation: str, state: str):
        super().__init__(f"cannot {operation} while session is {state}")
        self.operation = operation
        self.state = state
