from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from enum import Enum


class Outcome(str, Enum):
    WIN = "Win"
    LOSS = "Loss"
    BREAK_EVEN = "BE"


# Score fields share the 1-5 self-rating scale used by the entry form
def _score(alias: str):
    return Field(default=None, alias=alias, ge=1, le=5)


class TradeDetails(BaseModel):
    """Optional analytical fields shared by create, update and read schemas."""
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    analysis_tf: Optional[str] = Field(default=None, alias="analysisTF")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")

    # Execution detail
    planned_entry: Optional[float] = Field(default=None, alias="plannedEntry")
    planned_sl: Optional[float] = Field(default=None, alias="plannedSL")
    planned_tp: Optional[float] = Field(default=None, alias="plannedTP")
    actual_entry: Optional[float] = Field(default=None, alias="actualEntry")
    actual_sl: Optional[float] = Field(default=None, alias="actualSL")
    actual_tp: Optional[float] = Field(default=None, alias="actualTP")
    risk_percent: Optional[float] = Field(default=None, alias="riskPercent", ge=0)
    planned_rr: Optional[float] = Field(default=None, alias="plannedRR")
    achieved_rr: Optional[float] = Field(default=None, alias="achievedRR")
    pips_gained_lost: Optional[float] = Field(default=None, alias="pipsGainedLost")
    lot_size: Optional[float] = Field(default=None, alias="lotSize", ge=0)
    entry_method: Optional[str] = Field(default=None, alias="entryMethod")
    exit_strategy: Optional[str] = Field(default=None, alias="exitStrategy")
    break_even_applied: bool = Field(default=False, alias="breakEvenApplied")

    # Qualitative scoring (1-5)
    market_alignment: Optional[int] = _score("marketAlignment")
    setup_clarity: Optional[int] = _score("setupClarity")
    entry_precision: Optional[int] = _score("entryPrecision")
    confluence: Optional[int] = _score("confluence")
    timing_quality: Optional[int] = _score("timingQuality")
    confidence_level: Optional[int] = _score("confidenceLevel")
    focus_level: Optional[int] = _score("focusLevel")
    stress_level: Optional[int] = _score("stressLevel")

    # Discipline / psychology
    emotional_state: Optional[str] = Field(default=None, alias="emotionalState")
    rules_followed: Optional[float] = Field(default=None, alias="rulesFollowed", ge=0, le=100)
    forced_trade: bool = Field(default=False, alias="forcedTrade")
    missed_setup: bool = Field(default=False, alias="missedSetup")
    overtrading: bool = Field(default=False, alias="overtrading")
    documentation_saved: bool = Field(default=False, alias="documentationSaved")
    worth_repeating: bool = Field(default=True, alias="worthRepeating")

    # Review notes
    what_worked: Optional[str] = Field(default=None, alias="whatWorked")
    what_failed: Optional[str] = Field(default=None, alias="whatFailed")
    adjustments: Optional[str] = Field(default=None, alias="adjustments")


class TradeCreate(TradeDetails):
    asset: str = Field(min_length=1)
    strategy: str = Field(min_length=1)
    session: str           # London, New York, Asian, Overlap
    condition: str         # Trending, Ranging
    bias: str              # Bullish, Bearish
    outcome: Outcome
    r_achieved: float = Field(alias="rAchieved", allow_inf_nan=False)
    pl_amt: float = Field(alias="plAmt", allow_inf_nan=False)
    context_tf: Optional[str] = Field(default="D1", alias="contextTF")
    entry_tf: Optional[str] = Field(default="M5", alias="entryTF")


class TradeUpdate(TradeDetails):
    """Partial update: only fields present in the request body are applied."""
    asset: Optional[str] = Field(default=None, min_length=1)
    strategy: Optional[str] = Field(default=None, min_length=1)
    session: Optional[str] = None
    condition: Optional[str] = None
    bias: Optional[str] = None
    outcome: Optional[Outcome] = None
    r_achieved: Optional[float] = Field(default=None, alias="rAchieved", allow_inf_nan=False)
    pl_amt: Optional[float] = Field(default=None, alias="plAmt", allow_inf_nan=False)
    context_tf: Optional[str] = Field(default=None, alias="contextTF")
    entry_tf: Optional[str] = Field(default=None, alias="entryTF")

    @field_validator(
        "asset", "strategy", "session", "condition", "bias", "outcome",
        "r_achieved", "pl_amt", mode="before",
    )
    @classmethod
    def _required_not_null(cls, value):
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class Trade(TradeCreate):
    id: int
    date: Optional[str] = None
