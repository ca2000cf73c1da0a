"""Database schema for the garage opener.

A single SQLite file holds two tables:

- ``user``: email (stored lowercased), password hash, current bearer token and
  the subscriber flag read by the notification mailer.
- ``one_time_pin``: single-use pins. Rows are never deleted; a consumed pin keeps
  ``used = 1`` forever so it can never be redeemed again.

Booleans are INTEGER 0/1 and timestamps are ISO-8601 TEXT (UTC, with 'Z').
"""

from __future__ import annotations


SCHEMA_SQLITE = r"""
CREATE TABLE IF NOT EXISTS user (
    email TEXT PRIMARY KEY,
    password_hash TEXT NOT NULL,
    token TEXT UNIQUE,
    subscribed INTEGER NOT NULL DEFAULT 0,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS one_time_pin (
    pin TEXT PRIMARY KEY,
    email TEXT NOT NULL,
    used INTEGER NOT NULL DEFAULT 0,
    created_at TEXT,
    used_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_one_time_pin_email ON one_time_pin (email);
"""


def get_schema_sql() -> str:
    return SCHEMA_SQLITE
