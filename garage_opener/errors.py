"""Error kinds raised by the stores, the auth service and the relay layer.

Each error carries a short snake_case ``code``. The API turns codes into
response ``detail`` strings, so codes must never contain internal detail.
"""

from __future__ import annotations


class GarageError(Exception):
    code = "garage_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)


class NotFound(GarageError):
    code = "not_found"


class EmailTaken(GarageError):
    code = "email_taken"


class BadCredentials(GarageError):
    """Login failed. Raised for unknown users and wrong passwords alike."""

    code = "invalid_credentials"


class Unauthorized(GarageError):
    """Token missing/unknown, or pin unknown/already used."""

    code = "unauthorized"


class PinUnknown(GarageError):
    code = "pin_unknown"


class PinAlreadyUsed(GarageError):
    code = "pin_already_used"


class PersistenceError(GarageError):
    """The datastore failed; the transaction was rolled back and the call may be retried."""

    code = "persistence_error"


class DeviceUnavailable(GarageError):
    code = "device_unavailable"
