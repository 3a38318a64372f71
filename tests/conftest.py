"""Shared fixtures: a throwaway sqlite journal and an API client bound to it."""

from __future__ import annotations

import pytest


@pytest.fixture()
def tmp_db(tmp_path, monkeypatch):
    """Point the persistence layer at a fresh database file."""
    from backend import database

    monkeypatch.setattr(database, "DB_PATH", str(tmp_path / "journal.db"))
    database.init_db()
    return database


@pytest.fixture()
def upload_dir(tmp_path, monkeypatch):
    from backend.api import main

    path = tmp_path / "uploads"
    monkeypatch.setattr(main, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture()
def client(tmp_db, upload_dir, monkeypatch):
    from fastapi.testclient import TestClient

    from backend.api import main
    from config.settings import settings

    monkeypatch.setattr(settings, "SEED_ON_STARTUP", False)
    with TestClient(main.app) as test_client:
        yield test_client


def make_trade(**overrides) -> dict:
    """A valid journal entry in wire (camelCase) form."""
    trade = {
        "asset": "EURUSD",
        "strategy": "SMC Breaker",
        "session": "London",
        "condition": "Trending",
        "bias": "Bullish",
        "outcome": "Win",
        "rAchieved": 2,
        "plAmt": 500,
    }
    trade.update(overrides)
    return trade
