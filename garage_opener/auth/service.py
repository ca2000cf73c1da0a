"""Authentication service.

Two ways lead to the door:

1. email/password -> ``login`` -> token -> ``authenticate`` -> toggle
2. token -> ``new_one_time_pin`` -> pin -> ``redeem_one_time_pin`` -> toggle

Failures are deliberately coarse: login reports ``BadCredentials`` for both an
unknown email and a wrong password, and pin redemption reports ``Unauthorized``
for both an unknown pin and a consumed one.
"""

from __future__ import annotations

from typing import Any

from garage_opener.errors import BadCredentials, NotFound, PinAlreadyUsed, PinUnknown, Unauthorized
from garage_opener.models import User

from . import pins, users
from .security import dummy_verify, hash_password, new_token, verify_password


def register_user(conn: Any, *, email: str, password: str, subscribed: bool = False) -> User:
    return users.create_user(
        conn,
        email=email,
        password_hash=hash_password(password),
        subscribed=subscribed,
    )


def login(conn: Any, email: str, password: str, *, token_bytes: int = 32) -> str:
    """Check credentials and mint a new token, replacing the previous one."""
    try:
        user = users.get_user_by_email(conn, email)
    except NotFound:
        dummy_verify()
        raise BadCredentials()

    if not verify_password(password, user.password_hash):
        raise BadCredentials()

    token = new_token(token_bytes)
    users.set_token(conn, user.email, token)
    return token


def authenticate(conn: Any, token: str | None) -> User:
    try:
        return users.get_user_by_token(conn, token or "")
    except NotFound:
        raise Unauthorized()


def new_one_time_pin(conn: Any, user: User, *, pin_bytes: int = 12) -> str:
    if user is None or not user.email:
        raise Unauthorized()
    return pins.issue_pin(conn, user.email, nbytes=pin_bytes)


def redeem_one_time_pin(conn: Any, pin: str) -> str:
    try:
        return pins.redeem_pin(conn, pin)
    except (PinUnknown, PinAlreadyUsed):
        raise Unauthorized()
