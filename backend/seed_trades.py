"""
Seed data — a handful of journal entries so a fresh install has something to show.
Used at API startup (only when the trades table is empty) and runnable directly:
    python -m backend.seed_trades
"""
import logging

from backend.database import init_db, count_trades, seed_trades, DB_PATH

logger = logging.getLogger("tradevault.seed")

SEED_TRADES = [
    {
        "asset": "EURUSD", "strategy": "SMC Breaker", "session": "London",
        "condition": "Trending", "bias": "Bullish", "outcome": "Win",
        "r_achieved": 4.5, "pl_amt": 900, "context_tf": "D1", "entry_tf": "M5",
    },
    {
        "asset": "NAS100", "strategy": "Silver Bullet", "session": "New York",
        "condition": "Trending", "bias": "Bearish", "outcome": "Win",
        "r_achieved": 5.0, "pl_amt": 1500, "context_tf": "H4", "entry_tf": "M1",
    },
    {
        "asset": "NAS100", "strategy": "Silver Bullet", "session": "New York",
        "condition": "Trending", "bias": "Bearish", "outcome": "Loss",
        "r_achieved": -1, "pl_amt": -300, "context_tf": "H4", "entry_tf": "M1",
    },
]


def seed_if_empty(rows: list[dict] = None) -> int:
    """Insert the seed rows only when the journal has no trades. Returns rows inserted."""
    if count_trades() > 0:
        return 0
    logger.info("Seeding database with initial trades...")
    return seed_trades(rows if rows is not None else SEED_TRADES)


def main():
    init_db()
    inserted = seed_if_empty()
    if inserted:
        print(f"Done! Seeded {inserted} trades into {DB_PATH}")
    else:
        print(f"Journal at {DB_PATH} already has trades, nothing seeded.")


if __name__ == "__main__":
    main()
