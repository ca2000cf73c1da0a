from __future__ import annotations

from typing import Any, List, Optional

from garage_opener.config import Config
from garage_opener.db import connect
from garage_opener.errors import EmailTaken, NotFound
from garage_opener.models import User
from garage_opener.util.time import utcnow_iso

from .security import hash_password, redact


def _debug(msg: str) -> None:
    print(f"[users] {msg}")


_USER_COLS = "lower(email) AS email, password_hash, token, subscribed"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def create_user(conn: Any, *, email: str, password_hash: str, subscribed: bool = False) -> User:
    """Insert a user row. The email is stored lowercased.

    Raises EmailTaken if the normalized email already exists; the existing row is
    left untouched.
    """
    e = normalize_email(email)
    if not e:
        raise ValueError("email_blank")
    if not password_hash:
        raise ValueError("password_hash_blank")

    # ON CONFLICT keeps the uniqueness check and the insert in one statement.
    cur = conn.execute(
        """
        INSERT INTO user (email, password_hash, token, subscribed, created_at)
        VALUES (?, ?, NULL, ?, ?)
        ON CONFLICT(email) DO NOTHING
        """,
        (e, password_hash, 1 if subscribed else 0, utcnow_iso()),
    )
    if cur.rowcount == 0:
        _debug(f"Refused duplicate user email={e}")
        raise EmailTaken()

    _debug(f"Created user email={e}")
    return User(email=e, password_hash=password_hash, token=None, subscribed=bool(subscribed))


def get_user_by_email(conn: Any, email: str) -> User:
    e = normalize_email(email)
    if not e:
        raise NotFound()
    row = conn.execute(
        f"SELECT {_USER_COLS} FROM user WHERE lower(email)=?",
        (e,),
    ).fetchone()
    if row is None:
        raise NotFound()
    return User.from_row(row)


def get_user_by_token(conn: Any, token: str) -> User:
    if not token:
        raise NotFound()
    row = conn.execute(
        f"SELECT {_USER_COLS} FROM user WHERE token=?",
        (token,),
    ).fetchone()
    if row is None:
        raise NotFound()
    return User.from_row(row)


def set_token(conn: Any, email: str, token: Optional[str]) -> None:
    """Overwrite the user's token. The previous token stops matching immediately.

    An empty token clears the column (NULL), which never matches a lookup.
    """
    e = normalize_email(email)
    cur = conn.execute(
        "UPDATE user SET token=? WHERE lower(email)=?",
        (token or None, e),
    )
    if cur.rowcount == 0:
        raise NotFound()
    _debug(f"Updated token {redact(token)} for email={e}")


def token_exists(conn: Any, token: str) -> bool:
    if not token:
        return False
    row = conn.execute("SELECT 1 FROM user WHERE token=? LIMIT 1", (token,)).fetchone()
    return row is not None


def list_subscribed_emails(conn: Any) -> List[str]:
    rows = conn.execute(
        "SELECT lower(email) AS email FROM user WHERE subscribed=1 ORDER BY email"
    ).fetchall()
    return [str(r["email"]) for r in rows]


def set_subscribed(conn: Any, email: str, subscribed: bool) -> None:
    e = normalize_email(email)
    cur = conn.execute(
        "UPDATE user SET subscribed=? WHERE lower(email)=?",
        (1 if subscribed else 0, e),
    )
    if cur.rowcount == 0:
        raise NotFound()
    _debug(f"email={e} subscribed={bool(subscribed)}")


def count_users(conn: Any) -> int:
    return int(conn.execute("SELECT COUNT(*) AS n FROM user").fetchone()["n"])


def bootstrap_user_if_needed(
    cfg: Config,
    *,
    email: str | None = None,
    password: str | None = None,
) -> Optional[User]:
    """Create the first user if the user table is empty.

    Credentials come from the arguments (command line) or, failing that, from
    GARAGE_BOOTSTRAP_EMAIL / GARAGE_BOOTSTRAP_PASSWORD. Nothing is created when
    either is blank or when any user already exists.
    """
    e = normalize_email(email or cfg.BOOTSTRAP_EMAIL)
    pw = password or cfg.BOOTSTRAP_PASSWORD
    if not e or not pw:
        return None

    with connect(cfg.DB_PATH, timeout=cfg.DB_TIMEOUT_SECONDS) as conn:
        if count_users(conn) > 0:
            return None
        return create_user(conn, email=e, password_hash=hash_password(pw))
