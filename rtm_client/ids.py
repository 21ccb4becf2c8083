
from __future__ import annotations
import threading

from rtm_shared.utils import MAX_REQUEST_ID


class IdentifierAllocator:
    """Hands out request ids 1, 2, 3, ... for one session.

    Safe to call from several threads or coroutines at once: every value is
    returned exactly once and none are skipped.
    """

    def __init__(self, start: int = 0) -> None:
        if not 0 <= start <= MAX_REQUEST_ID:
            raise ValueError(f"start must be within [0, {MAX_REQUEST_ID}]")
        self._last = start
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            if self._last >= MAX_REQUEST_ID:
                raise OverflowError("request id space exhausted for this session")
            self._last += 1
            return self._last

    @property
    def last(self) -> int:
        """Highest id handed out so far (0 before the first call)"""
        with self._lock:
            return self._last
