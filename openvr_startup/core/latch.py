from __future__ import annotations

import threading


class Latch:
    """One-shot, set-once boolean shared between threads.

    Readers never observe a set latch becoming unset: there is no clear().
    Waiters are released on the first set().
    """

    def __init__(self, name: str = "latch"):
        self.name = name
        self._event = threading.Event()
        self._lock = threading.Lock()

    def set(self) -> bool:
        """Set the latch. Returns True only for the call that flipped it."""

        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            return True

    @property
    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, is_set={self.is_set})"


class CancellationToken(Latch):
    """Process-wide cooperative cancellation.

    Any thread may cancel; repeated cancels are no-ops. Polling loops use
    `sleep()` so they wake as soon as cancellation arrives.
    """

    def __init__(self, name: str = "cancel"):
        super().__init__(name)

    def cancel(self) -> bool:
        return self.set()

    @property
    def is_cancelled(self) -> bool:
        return self.is_set

    def sleep(self, seconds: float) -> bool:
        """Wait up to `seconds`; returns True if cancelled meanwhile."""

        return self.wait(max(0.0, seconds))
