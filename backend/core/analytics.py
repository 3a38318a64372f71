"""
Journal analytics — portfolio stats, drawdown, streaks and the audit heuristic.
Every function takes the full list of trade dicts and recomputes from scratch.
"""
import math
from itertools import groupby

import numpy as np
import pandas as pd

from backend.models.trade import Trade

BASE_BALANCE = 100_000.0

SESSIONS = ("London", "New York", "Asian", "Overlap")
BIASES = ("Bullish", "Bearish")

# Dimension name (as used by the API) → trade column
DIMENSIONS = {
    "asset": "asset",
    "session": "session",
    "strategy": "strategy",
    "entryTF": "entry_tf",
    "condition": "condition",
    "month": "month",
}

# Accept wire (camelCase) keys as well as accessor (snake_case) keys
_WIRE_NAMES = {
    field.alias: name
    for name, field in Trade.model_fields.items()
    if field.alias and field.alias != name
}
_TRADE_FIELDS = set(Trade.model_fields)

_TEXT_COLUMNS = ("asset", "strategy", "session", "condition", "bias", "outcome", "entry_tf", "date")
_NUMERIC_COLUMNS = ("r_achieved", "pl_amt")
_EPOCH = pd.Timestamp(0, tz="UTC")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives (12.5 → 13)."""
    return int(math.floor(value + 0.5))


def _win_rate(wins: int, total: int) -> int:
    return round_half_up(wins / total * 100) if total else 0


def to_frame(trades: list[dict]) -> pd.DataFrame:
    """Build a DataFrame with numeric columns coerced (unparsable → 0)."""
    df = pd.DataFrame.from_records(list(trades)).rename(columns=_WIRE_NAMES)
    for col in _TEXT_COLUMNS:
        if col not in df.columns:
            df[col] = None
    for col in _NUMERIC_COLUMNS:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0).astype(float)
        else:
            df[col] = 0.0
    return df


def _trade_times(df: pd.DataFrame) -> pd.Series:
    # Undated or unparsable trades sort as epoch zero
    when = pd.to_datetime(df["date"], utc=True, errors="coerce", format="ISO8601")
    return when.fillna(_EPOCH)


def chronological(df: pd.DataFrame) -> pd.DataFrame:
    """Stable sort by trade date."""
    return df.assign(_when=_trade_times(df)).sort_values("_when", kind="stable")


def _outcomes(df: pd.DataFrame) -> list:
    return chronological(df)["outcome"].tolist()


# ──────────────────────────────────────────────
# PORTFOLIO STATS
# ──────────────────────────────────────────────

def calculate_stats(trades: list[dict]) -> dict:
    """Net P/L, win rate, expectancy (mean R) and profit factor."""
    df = to_frame(trades)
    count = len(df)
    if not count:
        return {
            "count": 0, "wins": 0, "losses": 0, "break_even": 0,
            "net": 0.0, "gross_win": 0.0, "gross_loss": 0.0,
            "win_rate": 0, "expectancy": 0.0, "profit_factor": 0.0,
        }

    pl = df["pl_amt"]
    wins = int((df["outcome"] == "Win").sum())
    gross_win = float(pl[pl > 0].sum())
    gross_loss = abs(float(pl[pl < 0].sum()))
    profit_factor = gross_win / gross_loss if gross_loss > 0 else gross_win

    return {
        "count": count,
        "wins": wins,
        "losses": int((df["outcome"] == "Loss").sum()),
        "break_even": int((df["outcome"] == "BE").sum()),
        "net": round(float(pl.sum()), 2),
        "gross_win": round(gross_win, 2),
        "gross_loss": round(gross_loss, 2),
        "win_rate": _win_rate(wins, count),
        "expectancy": round(float(df["r_achieved"].mean()), 2),
        "profit_factor": round(profit_factor, 2),
    }


# ──────────────────────────────────────────────
# DRAWDOWN
# ──────────────────────────────────────────────

def _walk(pl: np.ndarray, base_balance: float):
    """Running balance, peak and peak-to-valley drawdown for a P/L sequence."""
    balances = base_balance + np.cumsum(pl)
    peaks = np.maximum.accumulate(np.concatenate(([base_balance], balances)))[1:]
    drawdowns = peaks - balances
    return balances, peaks, drawdowns


def _max_drawdown(pl: np.ndarray, base_balance: float) -> float:
    if not len(pl):
        return 0.0
    _, _, drawdowns = _walk(pl, base_balance)
    return float(drawdowns.max())


def _drawdown_percent(max_dd: float, base_balance: float) -> float:
    return round(max_dd / base_balance * 100, 2)


def running_drawdown(trades: list[dict], base_balance: float = BASE_BALANCE) -> dict:
    """Walk all trades chronologically from a notional base balance."""
    df = chronological(to_frame(trades))
    pl = df["pl_amt"].to_numpy(dtype=float)
    if not len(pl):
        return {
            "base_balance": base_balance, "final_balance": base_balance,
            "peak": base_balance, "max_drawdown": 0.0, "drawdown_percent": 0.0,
            "equity_curve": [],
        }

    balances, peaks, drawdowns = _walk(pl, base_balance)
    running_max = np.maximum.accumulate(drawdowns)
    ids = df["id"].tolist() if "id" in df.columns else [None] * len(df)
    curve = [
        {
            "id": None if trade_id is None or pd.isna(trade_id) else int(trade_id),
            "date": None if pd.isna(date) else date,
            "balance": round(float(b), 2),
            "peak": round(float(p), 2),
            "drawdown": round(float(d), 2),
            "max_drawdown": round(float(m), 2),
        }
        for trade_id, date, b, p, d, m in zip(
            ids, df["date"].tolist(), balances, peaks, drawdowns, running_max
        )
    ]
    max_dd = float(drawdowns.max())
    return {
        "base_balance": base_balance,
        "final_balance": round(float(balances[-1]), 2),
        "peak": round(float(peaks[-1]), 2),
        "max_drawdown": round(max_dd, 2),
        "drawdown_percent": _drawdown_percent(max_dd, base_balance),
        "equity_curve": curve,
    }


def _month_labels(df: pd.DataFrame) -> pd.Series:
    when = pd.to_datetime(df["date"], utc=True, errors="coerce", format="ISO8601")
    return when.dt.strftime("%b %Y").fillna("Unknown")


def _group_keys(df: pd.DataFrame, dimension: str) -> pd.Series:
    if dimension == "month":
        return _month_labels(df)
    return df[DIMENSIONS[dimension]].fillna("Unknown").astype(str)


def _group_summary(key: str, group: pd.DataFrame, base_balance: float) -> dict:
    ordered = chronological(group)
    max_dd = _max_drawdown(ordered["pl_amt"].to_numpy(dtype=float), base_balance)
    total = len(group)
    wins = int((group["outcome"] == "Win").sum())
    return {
        "dimension": key,
        "max_drawdown": round(max_dd, 2),
        "drawdown_percent": _drawdown_percent(max_dd, base_balance),
        "total_pl": round(float(group["pl_amt"].sum()), 2),
        "trades": total,
        "wins": wins,
        "losses": int((group["outcome"] == "Loss").sum()),
        "win_rate": _win_rate(wins, total),
    }


def drawdown_by_dimension(
    trades: list[dict], dimension: str, base_balance: float = BASE_BALANCE
) -> list[dict]:
    """Bucket trades by one dimension and run the drawdown walk per bucket.

    Buckets come back worst drawdown first; ties keep first-seen order.
    """
    if dimension not in DIMENSIONS:
        raise ValueError(f"Unknown dimension: {dimension}")
    df = to_frame(trades)
    if df.empty:
        return []
    df = df.assign(_key=_group_keys(df, dimension))
    rows = [
        _group_summary(key, group, base_balance)
        for key, group in df.groupby("_key", sort=False)
    ]
    return sorted(rows, key=lambda r: r["max_drawdown"], reverse=True)


def drawdown_matrix(trades: list[dict], base_balance: float = BASE_BALANCE) -> dict:
    return {dim: drawdown_by_dimension(trades, dim, base_balance) for dim in DIMENSIONS}


def monthly_breakdown(trades: list[dict], base_balance: float = BASE_BALANCE) -> list[dict]:
    """Per-month net, win rate and drawdown, in chronological order."""
    df = chronological(to_frame(trades))
    if df.empty:
        return []
    df = df.assign(_key=_month_labels(df))
    result = []
    for key, group in df.groupby("_key", sort=False):
        summary = _group_summary(key, group, base_balance)
        result.append({
            "month": key,
            "net": summary["total_pl"],
            "trades": summary["trades"],
            "wins": summary["wins"],
            "losses": summary["losses"],
            "win_rate": summary["win_rate"],
            "max_drawdown": summary["max_drawdown"],
            "drawdown_percent": summary["drawdown_percent"],
        })
    return result


# ──────────────────────────────────────────────
# BREAKDOWNS
# ──────────────────────────────────────────────

def win_rate_by(trades: list[dict], field: str, values=None) -> list[dict]:
    """Win rate per value of a trade field.

    With `values`, exactly those buckets are reported (zero when empty);
    otherwise every value present, in first-seen order.
    """
    column = _WIRE_NAMES.get(field, field)
    if column not in _TRADE_FIELDS:
        raise ValueError(f"Unknown trade field: {field}")
    df = to_frame(trades)
    if column not in df.columns:
        df[column] = None
    keys = list(values) if values is not None else list(dict.fromkeys(df[column].dropna()))
    result = []
    for key in keys:
        subset = df[df[column] == key]
        wins = int((subset["outcome"] == "Win").sum())
        result.append({
            "key": key,
            "trades": len(subset),
            "wins": wins,
            "win_rate": _win_rate(wins, len(subset)),
        })
    return result


def strategy_health(trades: list[dict]) -> list[dict]:
    """Per-strategy win rate split by trending vs ranging conditions."""
    df = to_frame(trades)
    result = []
    for strategy, group in df.groupby("strategy", sort=False):
        trending = group[group["condition"] == "Trending"]
        ranging = group[group["condition"] == "Ranging"]
        result.append({
            "strategy": strategy,
            "trades": len(group),
            "trending_win_rate": _win_rate(int((trending["outcome"] == "Win").sum()), len(trending)),
            "ranging_win_rate": _win_rate(int((ranging["outcome"] == "Win").sum()), len(ranging)),
            "net": round(float(group["pl_amt"].sum()), 2),
            "avg_r": round(float(group["r_achieved"].mean()), 2),
        })
    return result


# ──────────────────────────────────────────────
# SEQUENCES
# ──────────────────────────────────────────────

def streaks(trades: list[dict]) -> dict:
    """Current run plus the longest win and loss runs (break-evens split runs)."""
    runs = [(outcome, len(list(run))) for outcome, run in groupby(_outcomes(to_frame(trades)))]
    current = {"outcome": runs[-1][0], "length": runs[-1][1]} if runs else {"outcome": None, "length": 0}
    return {
        "current": current,
        "longest_win": max((n for o, n in runs if o == "Win"), default=0),
        "longest_loss": max((n for o, n in runs if o == "Loss"), default=0),
    }


def performance_after_loss(trades: list[dict]) -> dict:
    """How trades that immediately follow a loss turn out."""
    outcomes = _outcomes(to_frame(trades))
    following = [cur for prev, cur in zip(outcomes, outcomes[1:]) if prev == "Loss"]
    wins = sum(1 for o in following if o == "Win")
    return {
        "count": len(following),
        "wins": wins,
        "win_rate": _win_rate(wins, len(following)),
    }


def rolling_expectancy(trades: list[dict], windows=(50, 200)) -> dict:
    r = chronological(to_frame(trades))["r_achieved"].to_numpy(dtype=float)
    return {
        f"last{w}": round(float(np.mean(r[-w:])), 2) if len(r) else 0.0
        for w in windows
    }


# ──────────────────────────────────────────────
# AUDIT HEURISTIC
# ──────────────────────────────────────────────

def audit_score(
    expectancy: float,
    rule_stability: float,
    execution_adherence: float,
    friction_impact: float,
    max_drawdown: float,
    trade_count: int,
) -> int:
    """Composite 0-100 reliability index. A display heuristic, not a statistic."""
    sample_factor = min(trade_count / 500, 1)
    math_term = expectancy * 45 if expectancy > 0 else 0
    robustness = (
        rule_stability * 0.4
        + execution_adherence * 0.4
        + (100 - friction_impact) * 0.2
    )
    survival = max(0, 100 - max_drawdown * 4)
    raw = (math_term * 0.4 + robustness * 0.3 + survival * 0.3) * (0.85 + 0.15 * sample_factor)
    return min(round_half_up(raw), 100)


def audit_inputs(trades: list[dict], base_balance: float = BASE_BALANCE) -> dict:
    """Derive the audit terms from what the journal actually records."""
    df = to_frame(trades)
    count = len(df)

    rules = pd.to_numeric(df.get("rules_followed", pd.Series(dtype=float)), errors="coerce").dropna()
    rule_stability = float(rules.mean()) if len(rules) else 100.0

    def _flag(column):
        if column not in df.columns:
            return pd.Series(False, index=df.index)
        return df[column].eq(True)

    undisciplined = _flag("forced_trade") | _flag("overtrading")
    execution_adherence = float((~undisciplined).sum()) / count * 100 if count else 100.0

    friction_impact = 0.0
    if "planned_entry" in df.columns and "actual_entry" in df.columns:
        planned = pd.to_numeric(df["planned_entry"], errors="coerce")
        actual = pd.to_numeric(df["actual_entry"], errors="coerce")
        recorded = planned.notna() & actual.notna()
        if recorded.any():
            worse = ((df["bias"] == "Bullish") & (actual > planned)) | (
                (df["bias"] == "Bearish") & (actual < planned)
            )
            friction_impact = float((worse & recorded).sum()) / int(recorded.sum()) * 100

    return {
        "expectancy": calculate_stats(trades)["expectancy"],
        "rule_stability": round(rule_stability, 2),
        "execution_adherence": round(execution_adherence, 2),
        "friction_impact": round(friction_impact, 2),
        "max_drawdown": running_drawdown(trades, base_balance)["drawdown_percent"],
        "trade_count": count,
    }


def audit(trades: list[dict], base_balance: float = BASE_BALANCE) -> dict:
    inputs = audit_inputs(trades, base_balance)
    rolling = rolling_expectancy(trades)
    # An empty journal has nothing to audit
    score = audit_score(**inputs) if inputs["trade_count"] else 0
    return {
        "score": score,
        "authorized": score >= 80,
        "inputs": inputs,
        "rolling_expectancy": rolling,
        "kill_switch": {
            "expectancy_fail": rolling["last50"] < 0,
            "drawdown_fail": inputs["max_drawdown"] > 12,
        },
    }


def dashboard(trades: list[dict], base_balance: float = BASE_BALANCE) -> dict:
    """Everything the overview page shows, in one payload."""
    df = to_frame(trades)
    return {
        "stats": calculate_stats(trades),
        "drawdown": running_drawdown(trades, base_balance),
        "streaks": streaks(trades),
        "after_loss": performance_after_loss(trades),
        "sessions": win_rate_by(trades, "session", SESSIONS),
        "biases": win_rate_by(trades, "bias", BIASES),
        "strategies": list(dict.fromkeys(df["strategy"].dropna())),
    }
