"""
Per-meeting single-flight coordination.

At most one processing run executes per meeting id. A caller that arrives
while a run for the same meeting is in flight waits for that run and gets
its result instead of starting a second one. Calls that arrive after the
run has finished start a new run.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Callable, Dict, TypeVar

from shared_utils.constants import LogScope
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.PROCESSING)

T = TypeVar("T")


class MeetingRunCoordinator:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._in_flight: Dict[str, Future] = {}
        # Number of callers that joined an existing run.
        self.coalesced = 0

    def is_running(self, meeting_id: str) -> bool:
        with self._lock:
            return meeting_id in self._in_flight

    def run(self, meeting_id: str, fn: Callable[[], T]) -> T:
        """Run *fn* for *meeting_id*, or join the run already in flight.

        Exceptions raised by *fn* propagate to the leader and every joiner.
        """
        with self._lock:
            existing = self._in_flight.get(meeting_id)
            if existing is None:
                future: Future = Future()
                self._in_flight[meeting_id] = future
            else:
                self.coalesced += 1

        if existing is not None:
            logger.info("processing_run_joined", meeting_id=meeting_id)
            return existing.result()

        try:
            result = fn()
        except BaseException as exc:
            self._release(meeting_id)
            future.set_exception(exc)
            raise
        self._release(meeting_id)
        future.set_result(result)
        return result

    def _release(self, meeting_id: str) -> None:
        with self._lock:
            self._in_flight.pop(meeting_id, None)
