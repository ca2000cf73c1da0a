from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Optional

from garage_opener.config import Config
from garage_opener.errors import DeviceUnavailable


def _debug(msg: str) -> None:
    print(f"[relay] {msg}")


STATE_OPEN = "open"
STATE_CLOSED = "closed"
STATE_UNKNOWN = "unknown"


class Relay:
    """A relay wired across the door motor's push-button terminals."""

    def pulse(self, seconds: float) -> None:
        raise NotImplementedError

    def read_state(self) -> str:
        return STATE_UNKNOWN


class NoopRelay(Relay):
    """Driver for hosts without GPIO (development, tests). Only counts pulses."""

    def __init__(self) -> None:
        self._count_lock = threading.Lock()
        self.pulses = 0

    def pulse(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)
        with self._count_lock:
            self.pulses += 1
        _debug(f"noop pulse #{self.pulses} ({seconds:.2f}s)")


class SysfsGpioRelay(Relay):
    """Drive the relay through the Linux sysfs GPIO interface.

    Optional door sensor on ``state_pin``: a reading of 1 means the contact is
    closed, i.e. the door is shut.
    """

    def __init__(
        self,
        *,
        relay_pin: int,
        state_pin: Optional[int] = None,
        root: str = "/sys/class/gpio",
        active_low: bool = False,
    ) -> None:
        self.relay_pin = int(relay_pin)
        self.state_pin = state_pin
        self.root = Path(root)
        self.active_low = active_low
        self._ready = False
        # read_state runs outside the toggle lock; setup must not race a pulse.
        self._setup_lock = threading.Lock()

    def _pin_dir(self, pin: int) -> Path:
        return self.root / f"gpio{pin}"

    def _export(self, pin: int, direction: str) -> None:
        d = self._pin_dir(pin)
        if not d.exists():
            (self.root / "export").write_text(str(pin))
        (d / "direction").write_text(direction)

    def _setup(self) -> None:
        with self._setup_lock:
            if self._ready:
                return
            self._export(self.relay_pin, "out")
            self._write(False)
            if self.state_pin is not None:
                self._export(int(self.state_pin), "in")
            self._ready = True

    def _write(self, on: bool) -> None:
        level = on != self.active_low
        (self._pin_dir(self.relay_pin) / "value").write_text("1" if level else "0")

    def pulse(self, seconds: float) -> None:
        try:
            self._setup()
            self._write(True)
            try:
                time.sleep(max(0.0, seconds))
            finally:
                self._write(False)
        except OSError as e:
            _debug(f"GPIO{self.relay_pin} pulse failed: {e}")
            raise DeviceUnavailable() from e
        _debug(f"GPIO{self.relay_pin} pulsed ({seconds:.2f}s)")

    def read_state(self) -> str:
        if self.state_pin is None:
            return STATE_UNKNOWN
        try:
            self._setup()
            raw = (self._pin_dir(int(self.state_pin)) / "value").read_text().strip()
        except OSError as e:
            _debug(f"GPIO{self.state_pin} read failed: {e}")
            raise DeviceUnavailable() from e
        if raw == "1":
            return STATE_CLOSED
        if raw == "0":
            return STATE_OPEN
        return STATE_UNKNOWN


def build_relay(cfg: Config) -> Relay:
    driver = (cfg.RELAY_DRIVER or "noop").strip().lower()
    if driver == "noop":
        return NoopRelay()
    if driver == "sysfs":
        return SysfsGpioRelay(
            relay_pin=cfg.RELAY_GPIO_PIN,
            state_pin=cfg.STATE_GPIO_PIN,
            root=cfg.GPIO_ROOT,
            active_low=cfg.RELAY_ACTIVE_LOW,
        )
    raise ValueError(f"unknown relay driver: {driver}")
