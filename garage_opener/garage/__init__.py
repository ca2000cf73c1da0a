"""Relay drivers and the toggle coordinator that serializes pulses."""

from .relay import NoopRelay, Relay, SysfsGpioRelay, build_relay
from .toggle import ToggleCoordinator

__all__ = ["NoopRelay", "Relay", "SysfsGpioRelay", "build_relay", "ToggleCoordinator"]
