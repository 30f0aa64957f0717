"""Run-wide circuit breaker for a rate-limited provider."""

import threading


class CircuitBreaker:
    """A flag that only moves from closed to tripped.

    Shared by every lookup in a run. ``reset`` starts a new run.
    """

    def __init__(self, name: str = "primary") -> None:
        self.name = name
        self._tripped = False
        self._lock = threading.Lock()

    @property
    def tripped(self) -> bool:
        return self._tripped

    def trip(self) -> bool:
        """Open the breaker; returns True only for the call that opened it."""
        with self._lock:
            if self._tripped:
                return False
            self._tripped = True
            return True

    def reset(self) -> None:
        with self._lock:
            self._tripped = False
