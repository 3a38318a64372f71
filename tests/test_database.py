"""Tests for the sqlite persistence layer."""

from __future__ import annotations

import sqlite3

from backend.seed_trades import SEED_TRADES, seed_if_empty


def _row(**overrides):
    row = {
        "asset": "EURUSD", "strategy": "SMC Breaker", "session": "London",
        "condition": "Trending", "bias": "Bullish", "outcome": "Win",
        "r_achieved": 2.0, "pl_amt": 500.0,
    }
    row.update(overrides)
    return row


# ---------------------------------------------------------------------------
# Trade CRUD
# ---------------------------------------------------------------------------

class TestTradeCrud:
    def test_create_assigns_id_and_date(self, tmp_db):
        trade = tmp_db.create_trade(_row())
        assert isinstance(trade["id"], int)
        assert trade["date"]
        assert trade["asset"] == "EURUSD"
        assert trade["pl_amt"] == 500.0

    def test_create_applies_column_defaults(self, tmp_db):
        trade = tmp_db.create_trade(_row())
        assert trade["context_tf"] == "D1"
        assert trade["entry_tf"] == "M5"
        assert trade["break_even_applied"] is False
        assert trade["worth_repeating"] is True
        assert trade["market_alignment"] is None

    def test_create_stores_explicit_null(self, tmp_db):
        trade = tmp_db.create_trade(_row(context_tf=None, forced_trade=None))
        assert trade["context_tf"] is None
        assert trade["entry_tf"] == "M5"
        assert trade["forced_trade"] is False

    def test_list_returns_every_trade_in_insert_order(self, tmp_db):
        first = tmp_db.create_trade(_row(asset="EURUSD"))
        second = tmp_db.create_trade(_row(asset="NAS100"))
        assert [t["id"] for t in tmp_db.list_trades()] == [first["id"], second["id"]]

    def test_update_only_touches_supplied_fields(self, tmp_db):
        trade = tmp_db.create_trade(_row(emotional_state="Calm"))
        updated = tmp_db.update_trade(trade["id"], {"pl_amt": -100.0, "outcome": "Loss"})
        assert updated["pl_amt"] == -100.0
        assert updated["outcome"] == "Loss"
        assert updated["emotional_state"] == "Calm"
        assert updated["date"] == trade["date"]

    def test_update_ignores_identity_columns(self, tmp_db):
        trade = tmp_db.create_trade(_row())
        updated = tmp_db.update_trade(trade["id"], {"id": 999, "date": "1999-01-01"})
        assert updated == trade

    def test_update_missing_trade_returns_none(self, tmp_db):
        tmp_db.create_trade(_row())
        before = tmp_db.list_trades()
        assert tmp_db.update_trade(12345, {"pl_amt": 1.0}) is None
        assert tmp_db.list_trades() == before

    def test_delete_is_idempotent(self, tmp_db):
        trade = tmp_db.create_trade(_row())
        assert tmp_db.delete_trade(trade["id"]) is True
        assert tmp_db.delete_trade(trade["id"]) is False
        assert tmp_db.get_trade(trade["id"]) is None
        assert tmp_db.list_trades() == []

    def test_boolean_flags_round_trip(self, tmp_db):
        trade = tmp_db.create_trade(_row(forced_trade=True, worth_repeating=False))
        assert trade["forced_trade"] is True
        assert trade["worth_repeating"] is False


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------

class TestSeeding:
    def test_seed_trades_bulk_insert(self, tmp_db):
        assert tmp_db.seed_trades([_row(), _row(asset="GBPUSD")]) == 2
        assert tmp_db.count_trades() == 2

    def test_seed_empty_list_is_noop(self, tmp_db):
        assert tmp_db.seed_trades([]) == 0
        assert tmp_db.count_trades() == 0

    def test_seed_if_empty_only_once(self, tmp_db):
        assert seed_if_empty() == len(SEED_TRADES)
        assert seed_if_empty() == 0
        assert tmp_db.count_trades() == len(SEED_TRADES)

    def test_seed_if_empty_skips_existing_journal(self, tmp_db):
        tmp_db.create_trade(_row())
        assert seed_if_empty() == 0
        assert tmp_db.count_trades() == 1


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

def test_init_db_migrates_old_schema(tmp_path, monkeypatch):
    from backend import database

    db_path = str(tmp_path / "old.db")
    monkeypatch.setattr(database, "DB_PATH", db_path)
    conn = sqlite3.connect(db_path)
    conn.execute("""
        CREATE TABLE trades (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            asset TEXT NOT NULL, strategy TEXT NOT NULL, session TEXT NOT NULL,
            condition TEXT NOT NULL, bias TEXT NOT NULL, outcome TEXT NOT NULL,
            r_achieved REAL NOT NULL, pl_amt REAL NOT NULL,
            context_tf TEXT DEFAULT 'D1', entry_tf TEXT DEFAULT 'M5',
            date TEXT NOT NULL
        )
    """)
    conn.execute(
        "INSERT INTO trades (asset, strategy, session, condition, bias, outcome, r_achieved, pl_amt, date) "
        "VALUES ('EURUSD', 'X', 'London', 'Trending', 'Bullish', 'Win', 1, 100, '2025-01-01')"
    )
    conn.commit()
    conn.close()

    database.init_db()
    database.init_db()

    (trade,) = database.list_trades()
    assert trade["image_url"] is None
    assert trade["worth_repeating"] is True


# ---------------------------------------------------------------------------
# Assets & preferences
# ---------------------------------------------------------------------------

def test_asset_crud(tmp_db):
    asset = tmp_db.create_asset({"name": "chart.png", "type": "image", "url": "/uploads/chart.png", "size": "1.2 MB"})
    assert asset["id"]
    assert asset["created_at"]
    assert [a["name"] for a in tmp_db.list_assets()] == ["chart.png"]
    assert tmp_db.delete_asset(asset["id"]) is True
    assert tmp_db.list_assets() == []


def test_preferences_upsert(tmp_db):
    assert tmp_db.get_preference("theme") is None
    tmp_db.set_preference("theme", "black")
    tmp_db.set_preference("theme", "blue")
    assert tmp_db.get_preference("theme") == "blue"
