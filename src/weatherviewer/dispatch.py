# hands results from worker threads back to the thread that owns the display
# workers only post(), the owner thread drains the queue and is the only one touching list/view state

from __future__ import annotations
import logging
import queue
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class MainThreadDispatcher:
    def __init__(self) -> None:
        self._queue: "queue.Queue[tuple]" = queue.Queue()

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        # safe from any thread
        self._queue.put((fn, args))

    def run_pending(self) -> int:
        # run whatever is queued right now, never blocks
        count = 0
        while True:
            try:
                fn, args = self._queue.get_nowait()
            except queue.Empty:
                return count
            fn(*args)
            count += 1

    def run_until(self, predicate: Callable[[], bool], timeout: Optional[float] = None) -> bool:
        # block and run callbacks until predicate() holds, returns False on timeout
        deadline = None if timeout is None else time.monotonic() + timeout
        while not predicate():
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                logger.debug("run_until timed out with %d callbacks queued", self._queue.qsize())
                return False
            try:
                fn, args = self._queue.get(timeout=remaining)
            except queue.Empty:
                continue
            fn(*args)
        return True
