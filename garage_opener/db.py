from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List

from garage_opener.errors import PersistenceError
from garage_opener.schema import get_schema_sql
from garage_opener.util.time import utcnow_iso


def _debug(msg: str) -> None:
    print(f"[db] {msg}")


def _sqlite_path(db_path: str) -> str:
    p = (db_path or "").strip()
    # Support sqlite:///path style
    if p.lower().startswith("sqlite:///"):
        p = p[len("sqlite:///") :]
    return p


def _open(db_path: str, timeout: float) -> sqlite3.Connection:
    path = _sqlite_path(db_path)
    if not path:
        raise PersistenceError("db_path_blank")
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    # isolation_level=IMMEDIATE: the first DML statement takes the write lock, so
    # writers queue on the busy timeout instead of failing on a lock upgrade.
    conn = sqlite3.connect(
        path,
        timeout=timeout,
        isolation_level="IMMEDIATE",
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        conn.execute(f"PRAGMA busy_timeout={int(max(0.0, timeout) * 1000)};")
    except Exception:
        conn.close()
        raise
    return conn


@contextmanager
def connect(db_path: str, *, timeout: float = 5.0) -> Iterator[sqlite3.Connection]:
    """Open a connection and run the block as one transaction.

    Entering the block is the transaction's begin; leaving it normally commits and
    leaving it with an exception rolls back. Every ``sqlite3.Error`` (including a
    busy timeout past ``timeout`` seconds or a failed commit) is re-raised as
    ``PersistenceError`` so callers never see driver details.
    """
    try:
        conn = _open(db_path, timeout)
    except sqlite3.Error as e:
        _debug(f"Could not open database {db_path}: {e}")
        raise PersistenceError() from e

    try:
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        _rollback_quietly(conn)
        _debug(f"Transaction rolled back: {e}")
        raise PersistenceError() from e
    except Exception:
        _rollback_quietly(conn)
        raise
    finally:
        conn.close()


def _rollback_quietly(conn: sqlite3.Connection) -> None:
    try:
        conn.rollback()
    except sqlite3.Error as e:
        # The original error is what the caller needs to see.
        _debug(f"Rollback failed: {e}")


def init_db(db_path: str, *, timeout: float = 5.0) -> None:
    """Create all tables and run lightweight migrations."""
    _debug(f"Initializing DB at {db_path}")
    with connect(db_path, timeout=timeout) as conn:
        _migrate_legacy_user_table(conn)
        # executescript commits any pending transaction before running.
        conn.executescript(get_schema_sql())
        _migrate(conn)


def _table_columns(conn: Any, table: str) -> List[str]:
    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
    return [str(r["name"]) for r in rows]


def _has_column(conn: Any, table: str, col: str) -> bool:
    return col in _table_columns(conn, table)


def _migrate_legacy_user_table(conn: Any) -> None:
    """Hash plain-text passwords left by older deployments.

    Older databases stored ``user.password`` verbatim. The column is replaced by
    ``password_hash``; existing logins keep working with the same password.
    """
    cols = _table_columns(conn, "user")
    if not cols or "password" not in cols:
        return

    # Imported here: the auth package imports this module.
    from garage_opener.auth.security import hash_password

    if "password_hash" not in cols:
        conn.execute("ALTER TABLE user ADD COLUMN password_hash TEXT")

    rows = conn.execute("SELECT rowid, password FROM user WHERE password IS NOT NULL").fetchall()
    for r in rows:
        pw = str(r["password"] or "")
        if not pw:
            continue
        conn.execute(
            "UPDATE user SET password_hash=? WHERE rowid=?",
            (hash_password(pw), r["rowid"]),
        )
    _archive_case_duplicates(conn)
    conn.execute("UPDATE user SET email=lower(email)")
    conn.execute("ALTER TABLE user DROP COLUMN password")
    conn.commit()
    _debug(f"Migrated {len(rows)} legacy plain-text password(s)")


def _archive_case_duplicates(conn: Any) -> None:
    """Move rows whose email differs from an earlier row only by case.

    Emails are unique once lowercased, so the oldest row per address keeps the
    login; later ones go to ``user_legacy_duplicate`` for manual review.
    """
    dupes = conn.execute(
        "SELECT rowid, email FROM user AS u "
        "WHERE rowid <> (SELECT MIN(rowid) FROM user AS v WHERE lower(v.email) = lower(u.email))"
    ).fetchall()
    if not dupes:
        return

    conn.execute(
        "CREATE TABLE IF NOT EXISTS user_legacy_duplicate ("
        "email TEXT NOT NULL, password_hash TEXT, moved_at TEXT)"
    )
    moved_at = utcnow_iso()
    for r in dupes:
        _debug(f"Legacy user {r['email']!r} collides with another row once lowercased; archiving it")
        conn.execute(
            "INSERT INTO user_legacy_duplicate (email, password_hash, moved_at) "
            "SELECT email, password_hash, ? FROM user WHERE rowid=?",
            (moved_at, r["rowid"]),
        )
        conn.execute("DELETE FROM user WHERE rowid=?", (r["rowid"],))


def _migrate(conn: Any) -> None:
    """Lightweight forward-only migrations for existing DBs."""
    user_cols_to_add = [
        ("token", "TEXT"),
        ("subscribed", "INTEGER NOT NULL DEFAULT 0"),
        ("created_at", "TEXT"),
    ]
    for col, ctype in user_cols_to_add:
        if not _has_column(conn, "user", col):
            conn.execute(f"ALTER TABLE user ADD COLUMN {col} {ctype}")
    # Covers tables created before email/token carried UNIQUE constraints.
    conn.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_user_email ON user (email)")
    conn.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_user_token ON user (token)")

    pin_cols_to_add = [
        ("used", "INTEGER NOT NULL DEFAULT 0"),
        ("created_at", "TEXT"),
        ("used_at", "TEXT"),
    ]
    for col, ctype in pin_cols_to_add:
        if not _has_column(conn, "one_time_pin", col):
            conn.execute(f"ALTER TABLE one_time_pin ADD COLUMN {col} {ctype}")
    conn.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_one_time_pin_pin ON one_time_pin (pin)")
