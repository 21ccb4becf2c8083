
from __future__ import annotations
import asyncio
from typing import Dict

from rtm_client.ws_client import RealTimeSession
from rtm_shared.envelope import MessageAck, OutboundMessage
from rtm_shared.log import get_logger

logger = get_logger(__name__)


class PendingRequests:
    """
    Request id -> future map layered over a RealTimeSession.

    The session itself never tracks outstanding requests. Wire this up by
    registering ``resolve`` as the session's "ack" handler (or calling it
    from your own reader) and ``fail_all`` when the reader stops.
    """

    def __init__(self, session: RealTimeSession) -> None:
        self.session = session
        self._pending: Dict[int, asyncio.Future[MessageAck]] = {}

    def __len__(self) -> int:
        return len(self._pending)

    async def send(self, message: OutboundMessage) -> asyncio.Future[MessageAck]:
        """Send ``message`` and return a future completed by its ack"""
        future: asyncio.Future[MessageAck] = asyncio.get_running_loop().create_future()

        assigned = []

        def register(request_id: int) -> None:
            assigned.append(request_id)
            self._pending[request_id] = future

        try:
            await self.session.send(message, on_assigned=register)
        except BaseException:
            for request_id in assigned:
                self._pending.pop(request_id, None)
            raise
        return future

    def resolve(self, ack: MessageAck) -> bool:
        """Complete the future waiting on ``ack.reply_to``. False if nobody was waiting."""
        future = self._pending.pop(ack.reply_to, None)
        if future is None:
            logger.debug("Ack for unknown request", extra={"request_id": ack.reply_to})
            return False
        if not future.done():
            future.set_result(ack)
        return True

    async def handle(self, message: MessageAck) -> None:
        """Coroutine form of resolve() for RealTimeSession.on("ack", ...)"""
        self.resolve(message)

    def fail_all(self, exc: BaseException) -> None:
        """Fail every outstanding request, e.g. after the reader hit a TransportError"""
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(exc)
        if pending:
            logger.warning("Failed %d pending requests: %s", len(pending), exc)
