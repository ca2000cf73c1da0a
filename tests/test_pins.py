import re
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from garage_opener.auth import pins, users
from garage_opener.db import connect
from garage_opener.errors import NotFound, PinAlreadyUsed, PinUnknown


URL_SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


@pytest.fixture
def owner(db_path) -> str:
    with connect(db_path) as conn:
        users.create_user(conn, email="owner@example.com", password_hash="h")
    return "owner@example.com"


def _issue(db_path: str, email: str) -> str:
    with connect(db_path) as conn:
        return pins.issue_pin(conn, email)


def test_issued_pin_is_url_safe_and_unused(db_path, owner):
    pin = _issue(db_path, owner)
    assert URL_SAFE.match(pin)
    # 12 random bytes -> 16 base64 characters (96 bits).
    assert len(pin) >= 11
    with connect(db_path) as conn:
        row = conn.execute("SELECT email, used FROM one_time_pin WHERE pin=?", (pin,)).fetchone()
    assert row["email"] == owner
    assert row["used"] == 0


def test_pins_are_distinct(db_path, owner):
    issued = {_issue(db_path, owner) for _ in range(50)}
    assert len(issued) == 50


def test_collision_is_retried(conn, owner):
    values = iter(["dup-pin-value", "dup-pin-value", "fresh-pin-value"])
    first = pins.issue_pin(conn, owner, generate=lambda n: next(values))
    second = pins.issue_pin(conn, owner, generate=lambda n: next(values))
    assert first == "dup-pin-value"
    assert second == "fresh-pin-value"
    assert conn.execute("SELECT COUNT(*) AS n FROM one_time_pin").fetchone()["n"] == 2


def test_redeem_returns_email_once(db_path, owner):
    pin = _issue(db_path, owner)
    with connect(db_path) as conn:
        assert pins.redeem_pin(conn, pin) == owner
    with connect(db_path) as conn:
        with pytest.raises(PinAlreadyUsed):
            pins.redeem_pin(conn, pin)
    with connect(db_path) as conn:
        row = conn.execute("SELECT used, used_at FROM one_time_pin WHERE pin=?", (pin,)).fetchone()
    assert row["used"] == 1
    assert row["used_at"]


def test_unknown_pin(conn):
    with pytest.raises(PinUnknown):
        pins.redeem_pin(conn, "does-not-exist")
    with pytest.raises(PinUnknown):
        pins.redeem_pin(conn, "")


def test_used_pin_stays_used_after_failed_redemptions(db_path, owner):
    pin = _issue(db_path, owner)
    with connect(db_path) as conn:
        pins.redeem_pin(conn, pin)
    for _ in range(3):
        with connect(db_path) as conn:
            with pytest.raises(PinAlreadyUsed):
                pins.redeem_pin(conn, pin)
    with connect(db_path) as conn:
        assert conn.execute("SELECT used FROM one_time_pin WHERE pin=?", (pin,)).fetchone()["used"] == 1


def test_concurrent_redemption_has_exactly_one_winner(db_path, owner):
    pin = _issue(db_path, owner)
    n = 8
    barrier = threading.Barrier(n)

    def attempt() -> str:
        barrier.wait()
        try:
            with connect(db_path, timeout=30) as conn:
                return pins.redeem_pin(conn, pin)
        except PinAlreadyUsed:
            return "already_used"

    with ThreadPoolExecutor(max_workers=n) as pool:
        results = list(pool.map(lambda _: attempt(), range(n)))

    assert results.count(owner) == 1
    assert results.count("already_used") == n - 1


def test_lookup_latest_pin_for_email(db_path, owner):
    with connect(db_path) as conn:
        with pytest.raises(NotFound):
            pins.lookup_latest_pin_for_email(conn, owner)
    _issue(db_path, owner)
    latest = _issue(db_path, owner)
    with connect(db_path) as conn:
        assert pins.lookup_latest_pin_for_email(conn, "OWNER@example.com") == latest
