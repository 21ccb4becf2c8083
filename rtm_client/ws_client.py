from __future__ import annotations
import asyncio
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from rtm_client.bootstrap import SessionBootstrapper
from rtm_client.config import Settings
from rtm_client.ids import IdentifierAllocator
from rtm_shared.envelope import InboundMessage, MessageAck, OutboundMessage, decode, encode
from rtm_shared.errors import DecodeError, SessionStateError, TransportError
from rtm_shared.log import get_logger, log_rtm_message
from rtm_shared.message_types import ACK_HANDLER_KEY

logger = get_logger(__name__)


MessageHandler = Callable[[InboundMessage], Awaitable[None]]


class SessionState(str, Enum):
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    CLOSED = "closed"


class RealTimeSession:
    """
    One RTM connection: discovery handshake, WebSocket dial, then framed
    JSON send/receive.

    Unconnected -> Connected -> Closed. There is no way back from Closed and
    no reconnect; build a new session for a new handshake.

    Any number of tasks may ``send`` at once; frames are written one at a
    time and every frame gets a fresh id from this session's allocator.
    ``receive`` belongs on a single reader task. It has no timeout; the only
    way to abort it is ``close()``, after which it raises TransportError.
    """

    def __init__(
        self,
        credential: str,
        settings: Optional[Settings] = None,
        *,
        bootstrapper: Optional[SessionBootstrapper] = None,
    ) -> None:
        self._credential = credential
        self.settings = settings or Settings()
        self.bootstrapper = bootstrapper or SessionBootstrapper(self.settings)
        self.state = SessionState.UNCONNECTED
        self.websocket: Optional[websockets.ClientConnection] = None
        self.handlers: Dict[str, MessageHandler] = {}
        self._ids = IdentifierAllocator()
        self._write_lock = asyncio.Lock()

    @property
    def credential(self) -> str:
        return self._credential

    @property
    def last_request_id(self) -> int:
        return self._ids.last

    def _require(self, operation: str, state: SessionState) -> None:
        if self.state is not state:
            raise SessionStateError(operation, self.state.value)

    async def connect(self) -> None:
        """Run the discovery handshake and dial the endpoint it returns"""
        self._require("connect", SessionState.UNCONNECTED)

        # requests is blocking; keep it off the event loop
        url = await asyncio.to_thread(self.bootstrapper.bootstrap, self._credential)

        subprotocols = [self.settings.subprotocol] if self.settings.subprotocol else None
        try:
            websocket = await websockets.connect(
                url,
                origin=self.settings.origin,
                subprotocols=subprotocols,
                ping_interval=self.settings.ping_interval,
                ping_timeout=self.settings.ping_timeout,
                open_timeout=self.settings.open_timeout,
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            logger.warning("Dial failed: %s", e, extra={"stage": "dial"})
            raise TransportError("dial", f"failure dialing web socket: {e}", e) from e

        if self.state is not SessionState.UNCONNECTED:
            # close() raced the handshake
            await websocket.close(code=1000)
            raise SessionStateError("connect", self.state.value)

        self.websocket = websocket
        self.state = SessionState.CONNECTED
        logger.info("RTM session connected")

    async def send(
        self,
        message: OutboundMessage,
        *,
        on_assigned: Optional[Callable[[int], None]] = None,
    ) -> int:
        """
        Assign the next request id to ``message`` (overwriting any value the
        caller set), write it as one frame and return the id.

        ``on_assigned`` is called with the id before the frame is written, so
        a caller can start waiting for the ack before it can possibly arrive.
        An id consumed by a failed write is never handed out again.
        """
        self._require("send", SessionState.CONNECTED)
        assert self.websocket is not None

        async with self._write_lock:
            message.id = self._ids.next()
            frame = encode(message)
            if on_assigned is not None:
                on_assigned(message.id)
            try:
                await self.websocket.send(frame)
            except ConnectionClosed as e:
                logger.warning("Connection closed while sending %s", message.type,
                               extra={"stage": "send", "request_id": message.id})
                raise TransportError("send", f"connection closed: {e}", e) from e

        logger.debug("Sent frame", extra={"request_id": message.id, "msg_type": message.type,
                                          "channel": message.channel})
        return message.id

    async def receive(self) -> InboundMessage:
        """Wait (without timeout) for the next frame and decode it"""
        self._require("receive", SessionState.CONNECTED)
        assert self.websocket is not None

        try:
            raw = await self.websocket.recv()
        except ConnectionClosed as e:
            logger.info("Connection closed while receiving: %s", e, extra={"stage": "receive"})
            raise TransportError("receive", f"connection closed: {e}", e) from e

        message = decode(raw)
        log_rtm_message(logger, "debug", "Received frame", frame=message.to_dict(), stage="receive")
        return message

    def on(self, msg_type: str, handler: MessageHandler) -> None:
        """Register a handler for an event type; use "ack" for acknowledgements"""
        self.handlers[msg_type] = handler

    async def recv_loop(self, default_handler: Optional[MessageHandler] = None) -> None:
        """
        Receive and dispatch frames until the connection ends.

        Returns quietly after a local close(). A peer close or network error
        is re-raised as TransportError. Frames that fail to decode, and
        handlers that raise, are logged and skipped.
        """
        while self.state is not SessionState.CLOSED:
            try:
                message = await self.receive()
            except DecodeError as e:
                logger.error("Failed to decode inbound frame: %s", e, extra={"stage": "receive"})
                continue
            except TransportError:
                if self.state is SessionState.CLOSED:
                    return
                raise

            key = ACK_HANDLER_KEY if isinstance(message, MessageAck) else message.type
            handler = self.handlers.get(key, default_handler)
            if handler:
                try:
                    await handler(message)
                except Exception as e:
                    logger.error("Handler for %s failed: %s", key, e,
                                 extra={"stage": "receive", "msg_type": key})

    async def close(self) -> None:
        """Close the connection (if any). The session cannot be used afterwards."""
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        if self.websocket is not None:
            await self.websocket.close(code=1000)
            logger.info("RTM session closed")

    async def __aenter__(self) -> 'RealTimeSession':
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
