"""
FITCOUNT Counting Service - Debounce Guard

Hard time floor between two accepted repetitions.
"""

import time
from typing import Callable, Optional


class DebounceGuard:
    """Rejects events that arrive sooner than `min_interval_ms` after the last accepted one."""

    def __init__(self, min_interval_ms: float = 500, clock: Callable[[], float] = time.monotonic):
        self.min_interval_s = min_interval_ms / 1000.0
        self.clock = clock
        self.last_accepted: Optional[float] = None

    def elapsed(self, now: Optional[float] = None) -> Optional[float]:
        """Seconds since the last accepted event, None if there was none."""
        if self.last_accepted is None:
            return None
        now = self.clock() if now is None else now
        return now - self.last_accepted

    def try_accept(self) -> bool:
        """Accept and timestamp the event if the interval has passed."""
        now = self.clock()
        elapsed = self.elapsed(now)
        if elapsed is not None and elapsed < self.min_interval_s:
            return False
        self.last_accepted = now
        return True

    def reset(self):
        self.last_accepted = None
