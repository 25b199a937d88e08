"""Shared test fixtures."""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest

from lumina.config import load_config, reset_config
from lumina.database import init_db, reset_db
from lumina.portal import Portal
from lumina.storage import MemoryKeyValueStore, SqlKeyValueStore

# Fixed instant used by FakeClock
T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def isolated_db(tmp_path, monkeypatch):
    """Use a fresh SQLite database and zero-latency config for each test."""
    reset_config()
    reset_db()

    db_path = str(tmp_path / "test.db")
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        f"database:\n  path: {db_path}\n"
        f"log:\n  dir: {tmp_path / 'logs'}\n"
        f"auth:\n  distinguished_principal: MWTINC\n"
        f"latency:\n  login_seconds: 0\n  search_seconds: 0\n  reset_seconds: 0\n"
    )

    monkeypatch.chdir(tmp_path)
    load_config(config_file)
    init_db()
    yield tmp_path

    reset_db()
    reset_config()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store():
    return MemoryKeyValueStore()


@pytest.fixture
def sql_store():
    return SqlKeyValueStore()


@pytest.fixture
def portal(sql_store, clock):
    return Portal.create(store=sql_store, rng=random.Random(42), clock=clock)
