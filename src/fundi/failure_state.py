from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class FailureSnapshot:
    failure_count: int
    last_failure_at: Optional[float]
    forced_fallback: bool


class FailureState:
    """
    Primary-provider failure bookkeeping shared by every request.

    All reads and writes go through the lock. `clock` returns seconds
    (time.monotonic by default) so tests can drive it by hand.
    """

    def __init__(
        self,
        max_failures: int = 3,
        cooldown_period_ms: int = 60_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_failures = max_failures
        self.cooldown_period_ms = cooldown_period_ms
        self._clock = clock
        self._lock = threading.Lock()
        self._failure_count = 0
        self._last_failure_at: Optional[float] = None
        self._forced = False

    def record_success(self) -> None:
        with self._lock:
            if self._failure_count > 0:
                self._failure_count -= 1

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_at = self._clock()

    def reset(self) -> bool:
        """Clear counters and the forced flag. Returns True if anything was set."""
        with self._lock:
            dirty = self._failure_count > 0 or self._forced
            self._failure_count = 0
            self._forced = False
            return dirty

    def set_forced(self, forced: Optional[bool] = None) -> bool:
        """Set the operator override, or flip it when `forced` is None."""
        with self._lock:
            self._forced = (not self._forced) if forced is None else bool(forced)
            return self._forced

    def should_use_fallback(self) -> bool:
        with self._lock:
            if self._forced:
                return True
            if self._failure_count >= self.max_failures and self._last_failure_at is not None:
                elapsed_ms = (self._clock() - self._last_failure_at) * 1000.0
                if elapsed_ms < self.cooldown_period_ms * self._failure_count:
                    return True
                # cooldown over
                self._failure_count = 0
            return False

    def snapshot(self) -> FailureSnapshot:
        with self._lock:
            return FailureSnapshot(self._failure_count, self._last_failure_at, self._forced)

    def time_since_last_failure_ms(self) -> Optional[float]:
        with self._lock:
            if self._last_failure_at is None:
                return None
            return (self._clock() - self._last_failure_at) * 1000.0
