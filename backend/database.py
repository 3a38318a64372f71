"""
SQLite persistence layer for TradeVault.
All database operations go through this module.
"""
import sqlite3
import logging
import os
from datetime import datetime, timezone

from config.settings import settings

logger = logging.getLogger("tradevault.db")


def _resolve_db_path(url: str) -> str:
    path = url[len("sqlite:///"):] if url.startswith("sqlite:///") else url
    if not os.path.isabs(path):
        path = os.path.join(os.path.dirname(__file__), "..", path)
    return path


DB_PATH = _resolve_db_path(settings.DATABASE_URL)

# Core journal columns (required at insert, except the two timeframes)
_CORE_COLUMNS = [
    "asset", "strategy", "session", "condition", "bias", "outcome",
    "r_achieved", "pl_amt", "context_tf", "entry_tf",
]

# Optional analytical columns, added to older databases by init_db()
_DETAIL_COLUMNS = {
    "analysis_tf": "TEXT",
    "image_url": "TEXT",
    "planned_entry": "REAL",
    "planned_sl": "REAL",
    "planned_tp": "REAL",
    "actual_entry": "REAL",
    "actual_sl": "REAL",
    "actual_tp": "REAL",
    "risk_percent": "REAL",
    "planned_rr": "REAL",
    "achieved_rr": "REAL",
    "pips_gained_lost": "REAL",
    "lot_size": "REAL",
    "entry_method": "TEXT",
    "exit_strategy": "TEXT",
    "break_even_applied": "INTEGER NOT NULL DEFAULT 0",
    "market_alignment": "INTEGER",
    "setup_clarity": "INTEGER",
    "entry_precision": "INTEGER",
    "confluence": "INTEGER",
    "timing_quality": "INTEGER",
    "confidence_level": "INTEGER",
    "focus_level": "INTEGER",
    "stress_level": "INTEGER",
    "emotional_state": "TEXT",
    "rules_followed": "REAL",
    "forced_trade": "INTEGER NOT NULL DEFAULT 0",
    "missed_setup": "INTEGER NOT NULL DEFAULT 0",
    "overtrading": "INTEGER NOT NULL DEFAULT 0",
    "documentation_saved": "INTEGER NOT NULL DEFAULT 0",
    "worth_repeating": "INTEGER NOT NULL DEFAULT 1",
    "what_worked": "TEXT",
    "what_failed": "TEXT",
    "adjustments": "TEXT",
}

TRADE_COLUMNS = _CORE_COLUMNS + list(_DETAIL_COLUMNS)

_BOOL_COLUMNS = {
    "break_even_applied", "forced_trade", "missed_setup",
    "overtrading", "documentation_saved", "worth_repeating",
}


def _get_connection() -> sqlite3.Connection:
    os.makedirs(os.path.dirname(DB_PATH), exist_ok=True)
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def init_db():
    conn = _get_connection()
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS trades (
            id          INTEGER PRIMARY KEY AUTOINCREMENT,
            asset       TEXT NOT NULL,
            strategy    TEXT NOT NULL,
            session     TEXT NOT NULL,
            condition   TEXT NOT NULL,
            bias        TEXT NOT NULL,
            outcome     TEXT NOT NULL,
            r_achieved  REAL NOT NULL,
            pl_amt      REAL NOT NULL,
            context_tf  TEXT DEFAULT 'D1',
            entry_tf    TEXT DEFAULT 'M5',
            date        TEXT NOT NULL
        );
        CREATE TABLE IF NOT EXISTS assets (
            id          INTEGER PRIMARY KEY AUTOINCREMENT,
            name        TEXT NOT NULL,
            type        TEXT NOT NULL,
            url         TEXT NOT NULL,
            size        TEXT NOT NULL,
            created_at  TEXT NOT NULL
        );
        CREATE TABLE IF NOT EXISTS preferences (
            key         TEXT PRIMARY KEY,
            value       TEXT NOT NULL
        );
    """)
    # Migrations: add detail columns to existing DBs (idempotent)
    existing = {r["name"] for r in conn.execute("PRAGMA table_info(trades)").fetchall()}
    for column, ddl in _DETAIL_COLUMNS.items():
        if column not in existing:
            conn.execute(f"ALTER TABLE trades ADD COLUMN {column} {ddl}")
    conn.commit()
    conn.close()


# ── Trade CRUD ──────────────────────────────────────────────


def _row_to_trade(row: sqlite3.Row) -> dict:
    trade = dict(row)
    for column in _BOOL_COLUMNS:
        if column in trade:
            trade[column] = bool(trade[column])
    return trade


def _insert_trade(conn: sqlite3.Connection, trade: dict, now: str) -> int:
    # Absent keys take the column default; an explicit None is stored as NULL,
    # the same as an update would. Flags are NOT NULL, so None falls back there too.
    columns = [
        c for c in TRADE_COLUMNS
        if c in trade and not (trade[c] is None and c in _BOOL_COLUMNS)
    ]
    placeholders = ", ".join("?" for _ in columns)
    cursor = conn.execute(
        f"INSERT INTO trades ({', '.join(columns)}, date) VALUES ({placeholders}, ?)",
        [trade[c] for c in columns] + [trade.get("date") or now],
    )
    return cursor.lastrowid


def list_trades() -> list[dict]:
    conn = _get_connection()
    rows = conn.execute("SELECT * FROM trades ORDER BY id").fetchall()
    conn.close()
    return [_row_to_trade(r) for r in rows]


def get_trade(trade_id: int) -> dict | None:
    conn = _get_connection()
    row = conn.execute("SELECT * FROM trades WHERE id = ?", (trade_id,)).fetchone()
    conn.close()
    return _row_to_trade(row) if row else None


def create_trade(trade: dict) -> dict:
    """Insert a validated trade; id and date are assigned here."""
    conn = _get_connection()
    trade_id = _insert_trade(conn, trade, _now())
    conn.commit()
    conn.close()
    return get_trade(trade_id)


def update_trade(trade_id: int, updates: dict) -> dict | None:
    """Apply a partial update. Returns None when the trade does not exist."""
    existing = get_trade(trade_id)
    if not existing:
        return None
    columns = [c for c in TRADE_COLUMNS if c in updates]
    if not columns:
        return existing
    conn = _get_connection()
    conn.execute(
        f"UPDATE trades SET {', '.join(f'{c} = ?' for c in columns)} WHERE id = ?",
        [updates[c] for c in columns] + [trade_id],
    )
    conn.commit()
    conn.close()
    return get_trade(trade_id)


def delete_trade(trade_id: int) -> bool:
    conn = _get_connection()
    cursor = conn.execute("DELETE FROM trades WHERE id = ?", (trade_id,))
    conn.commit()
    deleted = cursor.rowcount > 0
    conn.close()
    return deleted


def count_trades() -> int:
    conn = _get_connection()
    (count,) = conn.execute("SELECT COUNT(*) FROM trades").fetchone()
    conn.close()
    return count


def seed_trades(rows: list[dict]) -> int:
    """Bulk insert trades in a single commit. Returns the number inserted."""
    if not rows:
        return 0
    now = _now()
    conn = _get_connection()
    for row in rows:
        _insert_trade(conn, row, now)
    conn.commit()
    conn.close()
    logger.info("Seeded %d trades", len(rows))
    return len(rows)


# ── Asset CRUD ──────────────────────────────────────────────


def list_assets() -> list[dict]:
    conn = _get_connection()
    rows = conn.execute("SELECT * FROM assets ORDER BY id").fetchall()
    conn.close()
    return [dict(r) for r in rows]


def create_asset(asset: dict) -> dict:
    now = _now()
    conn = _get_connection()
    cursor = conn.execute(
        "INSERT INTO assets (name, type, url, size, created_at) VALUES (?, ?, ?, ?, ?)",
        (asset["name"], asset["type"], asset["url"], asset["size"], now),
    )
    conn.commit()
    asset_id = cursor.lastrowid
    conn.close()
    return {**asset, "id": asset_id, "created_at": now}


def delete_asset(asset_id: int) -> bool:
    conn = _get_connection()
    cursor = conn.execute("DELETE FROM assets WHERE id = ?", (asset_id,))
    conn.commit()
    deleted = cursor.rowcount > 0
    conn.close()
    return deleted


# ── Preferences ──────────────────────────────────────────────


def get_preference(key: str) -> str | None:
    conn = _get_connection()
    row = conn.execute("SELECT value FROM preferences WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else None


def set_preference(key: str, value: str) -> None:
    conn = _get_connection()
    conn.execute(
        "INSERT INTO preferences (key, value) VALUES (?, ?) "
        "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
        (key, value),
    )
    conn.commit()
    conn.close()
