from __future__ import annotations

import secrets

from passlib.context import CryptContext


# pbkdf2_sha256: salted per hash, stretched (29000+ rounds), constant-time verify.
_pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

MIN_TOKEN_BYTES = 16  # 128 bits
MIN_PIN_BYTES = 8  # 64 bits


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("password_blank")
    return _pwd.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return _pwd.verify(password, password_hash)
    except (ValueError, TypeError):
        # Malformed / unrecognized hash string.
        return False


def dummy_verify() -> None:
    """Spend the same time as a real verify, for logins with an unknown email."""
    _pwd.dummy_verify()


def new_token(nbytes: int = 32) -> str:
    """Opaque bearer token, URL-safe."""
    return secrets.token_urlsafe(max(MIN_TOKEN_BYTES, int(nbytes)))


def new_pin(nbytes: int = 12) -> str:
    """Opaque one-time pin, URL-safe so it can sit in a path segment."""
    return secrets.token_urlsafe(max(MIN_PIN_BYTES, int(nbytes)))


def redact(secret: str | None) -> str:
    """Short prefix of a credential, safe to print."""
    s = secret or ""
    if not s:
        return "<empty>"
    return f"{s[:4]}..."
