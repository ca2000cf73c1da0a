"""Garage door opener - HTTP backend.

A single-host service that pulses a relay wired to a garage door motor.

Core concepts:
- Users log in with email/password and receive an opaque bearer token (X-Auth-Token).
- A logged-in user can mint one-time pins; each pin opens/closes the door exactly once.
- All credential state lives in a single SQLite file.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
