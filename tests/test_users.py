import dataclasses

import pytest

from garage_opener.auth import users
from garage_opener.auth.security import hash_password
from garage_opener.db import connect
from garage_opener.errors import EmailTaken, NotFound


def test_create_user_lowercases_email(conn):
    u = users.create_user(conn, email="  Alice@Example.COM ", password_hash="h1")
    assert u.email == "alice@example.com"
    row = conn.execute("SELECT email FROM user").fetchone()
    assert row["email"] == "alice@example.com"


def test_lookup_is_case_insensitive(conn):
    users.create_user(conn, email="a@b", password_hash="h1")
    assert users.get_user_by_email(conn, "A@B") == users.get_user_by_email(conn, "a@b")


def test_duplicate_email_is_refused_without_touching_the_row(conn):
    users.create_user(conn, email="a@b", password_hash="original")
    with pytest.raises(EmailTaken):
        users.create_user(conn, email="A@B", password_hash="other", subscribed=True)
    with pytest.raises(EmailTaken):
        users.create_user(conn, email="a@b", password_hash="other")

    u = users.get_user_by_email(conn, "a@b")
    assert u.password_hash == "original"
    assert u.subscribed is False
    assert users.count_users(conn) == 1


def test_missing_user_is_not_found(conn):
    with pytest.raises(NotFound):
        users.get_user_by_email(conn, "nobody@example.com")
    with pytest.raises(NotFound):
        users.get_user_by_email(conn, "")


def test_set_token_overwrites_previous_token(conn):
    users.create_user(conn, email="a@b", password_hash="h")
    users.set_token(conn, "a@b", "first")
    assert users.get_user_by_token(conn, "first").email == "a@b"

    users.set_token(conn, "A@B", "second")
    assert users.get_user_by_token(conn, "second").email == "a@b"
    with pytest.raises(NotFound):
        users.get_user_by_token(conn, "first")
    assert users.token_exists(conn, "second") is True
    assert users.token_exists(conn, "first") is False


def test_empty_token_never_matches(conn):
    users.create_user(conn, email="a@b", password_hash="h")
    users.create_user(conn, email="c@d", password_hash="h")
    # Two users without a token must not collide on the unique column either.
    with pytest.raises(NotFound):
        users.get_user_by_token(conn, "")
    assert users.token_exists(conn, "") is False

    users.set_token(conn, "a@b", "")
    assert conn.execute("SELECT token FROM user WHERE email='a@b'").fetchone()["token"] is None


def test_set_token_for_unknown_user(conn):
    with pytest.raises(NotFound):
        users.set_token(conn, "ghost@example.com", "t")


def test_list_subscribed_emails(conn):
    users.create_user(conn, email="b@example.com", password_hash="h", subscribed=True)
    users.create_user(conn, email="a@example.com", password_hash="h")
    users.create_user(conn, email="C@example.com", password_hash="h")
    users.set_subscribed(conn, "c@example.com", True)

    assert users.list_subscribed_emails(conn) == ["b@example.com", "c@example.com"]

    users.set_subscribed(conn, "b@example.com", False)
    assert users.list_subscribed_emails(conn) == ["c@example.com"]


def test_user_public_view_hides_secrets(conn):
    users.create_user(conn, email="a@b", password_hash=hash_password("pw"))
    users.set_token(conn, "a@b", "tok")
    public = users.get_user_by_email(conn, "a@b").public()
    assert public == {"email": "a@b", "subscribed": False}


def test_bootstrap_only_when_table_is_empty(cfg, db_path):
    first = users.bootstrap_user_if_needed(cfg)
    assert first is not None
    assert first.email == "test@example.com"

    again = users.bootstrap_user_if_needed(cfg, email="other@example.com", password="x")
    assert again is None
    with connect(db_path) as conn:
        assert users.count_users(conn) == 1


def test_bootstrap_skipped_without_credentials(cfg, db_path):
    blank = dataclasses.replace(cfg, BOOTSTRAP_EMAIL="", BOOTSTRAP_PASSWORD="")
    assert users.bootstrap_user_if_needed(blank) is None
    assert users.bootstrap_user_if_needed(blank, email="a@b") is None
    with connect(db_path) as conn:
        assert users.count_users(conn) == 0


def test_user_repr_hides_secrets(conn):
    users.create_user(conn, email="a@b", password_hash="secret-hash")
    users.set_token(conn, "a@b", "secret-token")
    text = repr(users.get_user_by_email(conn, "a@b"))
    assert "a@b" in text
    assert "secret-hash" not in text
    assert "secret-token" not in text
