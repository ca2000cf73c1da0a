from __future__ import annotations

import threading

from garage_opener.errors import DeviceUnavailable

from .relay import Relay


def _debug(msg: str) -> None:
    print(f"[toggle] {msg}")


class ToggleCoordinator:
    """Single entry point to the relay.

    Holds a process-local lock for the whole pulse so concurrent toggles never
    overlap on the wire. Callers must have authorized the request already.
    """

    def __init__(self, relay: Relay, *, pulse_seconds: float = 0.5, wait_seconds: float = 10.0) -> None:
        self.relay = relay
        self.pulse_seconds = float(pulse_seconds)
        self.wait_seconds = float(wait_seconds)
        self._lock = threading.Lock()

    def toggle(self) -> None:
        """Pulse the relay once. Raises DeviceUnavailable if it cannot."""
        if not self._lock.acquire(timeout=max(0.0, self.wait_seconds)):
            _debug(f"Relay busy for more than {self.wait_seconds:.1f}s")
            raise DeviceUnavailable("relay_busy")
        try:
            self.relay.pulse(self.pulse_seconds)
        finally:
            self._lock.release()

    def state(self) -> str:
        return self.relay.read_state()
