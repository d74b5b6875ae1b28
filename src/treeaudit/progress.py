"""Progress reporting and cooperative cancellation for long-running passes."""

import threading
from typing import Callable, Optional

from treeaudit.exceptions import AnalysisCancelledError

# callback(stage, count) where stage is "scan", "tree" or "hash"
ProgressCallback = Callable[[str, int], None]


class ProgressCounter:
    """
    Thread-safe running count for one stage.

    Worker threads call increment(); the callback, if any, receives the
    updated total. Callbacks run on the worker thread, so they must be cheap.
    """

    def __init__(self, stage: str, callback: Optional[ProgressCallback] = None):
        self.stage = stage
        self._callback = callback
        self._count = 0
        self._lock = threading.Lock()

    @property
    def count(self) -> int:
        return self._count

    def increment(self, amount: int = 1) -> int:
        with self._lock:
            self._count += amount
            current = self._count
        if self._callback:
            self._callback(self.stage, current)
        return current


def check_cancelled(cancel_event: Optional[threading.Event], stage: str) -> None:
    """Raise AnalysisCancelledError if cancellation has been requested."""
    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelledError(stage)
