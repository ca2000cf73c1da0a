"""One-time pin store.

A pin row moves from ``used=0`` to ``used=1`` exactly once and is never deleted,
so a consumed pin keeps failing forever. Consumption is a single conditional
UPDATE; concurrent redemptions of the same pin are serialized by SQLite's write
lock and only one of them sees a changed row.
"""

from __future__ import annotations

from typing import Any, Callable

from garage_opener.errors import NotFound, PinAlreadyUsed, PinUnknown
from garage_opener.util.time import utcnow_iso

from .security import new_pin, redact
from .users import normalize_email


def _debug(msg: str) -> None:
    print(f"[pins] {msg}")


def issue_pin(
    conn: Any,
    email: str,
    *,
    nbytes: int = 12,
    generate: Callable[[int], str] = new_pin,
) -> str:
    """Insert a fresh unused pin for ``email`` and return it.

    A generated value that already exists is silently replaced by another one.
    """
    e = normalize_email(email)
    if not e:
        raise ValueError("email_blank")

    attempts = 0
    while True:
        attempts += 1
        pin = generate(nbytes)
        cur = conn.execute(
            """
            INSERT INTO one_time_pin (pin, email, used, created_at)
            VALUES (?, ?, 0, ?)
            ON CONFLICT(pin) DO NOTHING
            """,
            (pin, e, utcnow_iso()),
        )
        if cur.rowcount == 1:
            break
        _debug(f"Pin collision on attempt {attempts}, regenerating")

    _debug(f"Issued pin {redact(pin)} for email={e}")
    return pin


def redeem_pin(conn: Any, pin: str) -> str:
    """Consume ``pin`` and return the email it was issued for.

    Raises PinUnknown if no such pin exists and PinAlreadyUsed if it was consumed
    before (including by a concurrent caller that won the race).
    """
    if not pin:
        raise PinUnknown()

    cur = conn.execute(
        "UPDATE one_time_pin SET used=1, used_at=? WHERE pin=? AND used=0",
        (utcnow_iso(), pin),
    )
    if cur.rowcount == 1:
        row = conn.execute("SELECT lower(email) AS email FROM one_time_pin WHERE pin=?", (pin,)).fetchone()
        email = str(row["email"])
        _debug(f"Redeemed pin {redact(pin)} for email={email}")
        return email

    exists = conn.execute("SELECT 1 FROM one_time_pin WHERE pin=?", (pin,)).fetchone()
    if exists is None:
        _debug(f"Unknown pin {redact(pin)}")
        raise PinUnknown()
    _debug(f"Pin {redact(pin)} already used")
    raise PinAlreadyUsed()


def lookup_latest_pin_for_email(conn: Any, email: str) -> str:
    e = normalize_email(email)
    row = conn.execute(
        "SELECT pin FROM one_time_pin WHERE lower(email)=? ORDER BY rowid DESC LIMIT 1",
        (e,),
    ).fetchone()
    if row is None:
        raise NotFound()
    return str(row["pin"])
