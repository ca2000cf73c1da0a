import os
from dataclasses import dataclass
from typing import Optional

# Optional: load a local .env file if present.
try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    # python-dotenv is a convenience for local runs; plain env vars work without it.
    pass


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


def _env_int_or_none(name: str) -> Optional[int]:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return None
    return int(raw)


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    Every field reads its environment variable when the class body is evaluated;
    tests build their own instances with explicit keyword arguments.
    """

    # -----------------
    # Storage
    # -----------------
    DB_PATH: str = os.environ.get("GARAGE_DB_PATH", "./garage-opener.db")

    # Upper bound a single store operation may wait on a locked database.
    # Expiry surfaces as PersistenceError and rolls the transaction back.
    DB_TIMEOUT_SECONDS: float = float(os.environ.get("GARAGE_DB_TIMEOUT_SECONDS", "5.0"))

    # -----------------
    # Bootstrap
    # -----------------
    # Only used when the user table is empty (first boot).
    BOOTSTRAP_EMAIL: str = os.environ.get("GARAGE_BOOTSTRAP_EMAIL", "")
    BOOTSTRAP_PASSWORD: str = os.environ.get("GARAGE_BOOTSTRAP_PASSWORD", "")

    # -----------------
    # Credentials
    # -----------------
    # Entropy of minted credentials, in bytes (before url-safe base64).
    TOKEN_BYTES: int = int(os.environ.get("GARAGE_TOKEN_BYTES", "32"))
    PIN_BYTES: int = int(os.environ.get("GARAGE_PIN_BYTES", "12"))

    # -----------------
    # Relay
    # -----------------
    RELAY_DRIVER: str = os.environ.get("GARAGE_RELAY_DRIVER", "noop")  # noop|sysfs
    RELAY_GPIO_PIN: int = int(os.environ.get("GARAGE_RELAY_GPIO_PIN", "17"))
    STATE_GPIO_PIN: Optional[int] = _env_int_or_none("GARAGE_STATE_GPIO_PIN")
    GPIO_ROOT: str = os.environ.get("GARAGE_GPIO_ROOT", "/sys/class/gpio")
    RELAY_ACTIVE_LOW: bool = _env_bool("GARAGE_RELAY_ACTIVE_LOW", False) is True
    PULSE_SECONDS: float = float(os.environ.get("GARAGE_PULSE_SECONDS", "0.5"))

    # How long a toggle waits for an in-flight pulse before giving up.
    TOGGLE_WAIT_SECONDS: float = float(os.environ.get("GARAGE_TOGGLE_WAIT_SECONDS", "10"))


def load_config() -> Config:
    return Config()
