"""Shared pytest fixtures: a throwaway SQLite file per test and a no-op relay."""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from garage_opener.config import Config
from garage_opener.db import connect, init_db
from garage_opener.garage import NoopRelay, ToggleCoordinator


TEST_EMAIL = "test@example.com"
TEST_PASSWORD = "password"


@pytest.fixture
def cfg(tmp_path) -> Config:
    return Config(
        DB_PATH=str(tmp_path / "garage-opener.db"),
        DB_TIMEOUT_SECONDS=10.0,
        BOOTSTRAP_EMAIL=TEST_EMAIL,
        BOOTSTRAP_PASSWORD=TEST_PASSWORD,
        RELAY_DRIVER="noop",
        PULSE_SECONDS=0.0,
        TOGGLE_WAIT_SECONDS=1.0,
    )


@pytest.fixture
def db_path(cfg) -> str:
    init_db(cfg.DB_PATH)
    return cfg.DB_PATH


@pytest.fixture
def conn(db_path):
    """One transaction, committed at teardown."""
    with connect(db_path) as c:
        yield c


@pytest.fixture
def relay() -> NoopRelay:
    return NoopRelay()


@pytest.fixture
def toggler(relay) -> ToggleCoordinator:
    return ToggleCoordinator(relay, pulse_seconds=0.0, wait_seconds=1.0)
