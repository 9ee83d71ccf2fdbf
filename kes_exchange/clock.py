"""Time source used to stamp newly created records."""

from __future__ import annotations

import threading
import time


class SystemClock:
    """Wall-clock nanoseconds since the epoch that never run backwards."""

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, time.time_ns())
            return self._last


__all__ = ["SystemClock"]
