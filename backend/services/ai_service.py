"""
AI Service — optional LLM coaching over the trade journal.
Supports: Groq (free), Google Gemini (free), Anthropic Claude, OpenAI (or any
OpenAI-compatible endpoint via OPENAI_BASE_URL).
"""
import json
import re
from config.settings import settings

_SCORE_PATTERN = re.compile(r"Score:\s*(\d{1,3})")


class AIServiceNotConfigured(RuntimeError):
    """Raised when the selected provider has no API key."""


def _call_llm(system_prompt: str, user_prompt: str) -> str:
    provider = settings.AI_PROVIDER
    if not settings.ai_key():
        raise AIServiceNotConfigured(f"No API key configured for provider '{provider}'")

    if provider == "groq":
        from groq import Groq
        client = Groq(api_key=settings.GROQ_API_KEY)
        response = client.chat.completions.create(
            model="llama-3.3-70b-versatile",
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=2048,
        )
        return response.choices[0].message.content

    elif provider == "gemini":
        import google.generativeai as genai
        genai.configure(api_key=settings.GOOGLE_API_KEY)
        model = genai.GenerativeModel(
            "gemini-2.0-flash",
            system_instruction=system_prompt,
        )
        return model.generate_content(user_prompt).text

    elif provider == "anthropic":
        from anthropic import Anthropic
        client = Anthropic(api_key=settings.ANTHROPIC_API_KEY)
        response = client.messages.create(
            model="claude-sonnet-4-20250514",
            max_tokens=2048,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        return response.content[0].text

    else:  # openai
        from openai import OpenAI
        client = OpenAI(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL or None,
        )
        response = client.chat.completions.create(
            model="gpt-4o",
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=2048,
        )
        return response.choices[0].message.content


# ──────────────────────────────────────────────
# 1. JOURNAL REVIEW — Coach over aggregate stats
# ──────────────────────────────────────────────

JOURNAL_REVIEW_SYSTEM = """You are a trading performance coach reviewing a trader's journal.

You will receive aggregate statistics (win rate, expectancy in R, profit factor, drawdown, streaks,
performance after a loss) and the trader's most recent journal entries including their
self-rated discipline and psychology fields.

Formatting rules (STRICT):
- Use markdown headers (##) for each section
- Use bullet points (-) for every insight, NOT paragraphs
- **Bold** all key numbers
- Never promise profits or give financial advice

Structure:
## Edge Summary
## Where The Edge Leaks
## Discipline & Psychology
## Next Five Trades
"""


def _compact_trade(trade: dict) -> dict:
    return {k: v for k, v in trade.items() if v is not None and v != "" and v is not False}


def review_journal(stats: dict, trades: list[dict]) -> str:
    """Generate a coaching review of the whole journal."""
    recent = [_compact_trade(t) for t in trades[-20:]]
    prompt = f"""
Journal Statistics:
{json.dumps(stats, indent=2, default=str)}

Most Recent Entries (up to 20):
{json.dumps(recent, indent=2, default=str)}

Total entries: {len(trades)}
"""
    return _call_llm(JOURNAL_REVIEW_SYSTEM, prompt)


# ──────────────────────────────────────────────
# 2. TRADE CRITIQUE — Single journal entry
# ──────────────────────────────────────────────

TRADE_CRITIQUE_SYSTEM = """You are a trading coach critiquing one journal entry. Your goal is to educate, not judge.

Compare the planned entry/stop/target with what was actually executed, check the self-ratings
(market alignment, setup clarity, entry precision, confluence, timing) against the outcome,
and look at the discipline flags (forced trade, overtrading, missed setup, rules followed).

Format your response as:
## Discipline Score: X/100

### What Worked
- ...

### What Slipped
- ...

### Adjustment For Next Time
- ...
"""


def analyze_trade(trade: dict) -> dict:
    """Critique a single trade. Returns the markdown and an extracted 0-100 score."""
    prompt = f"Journal Entry:\n{json.dumps(_compact_trade(trade), indent=2, default=str)}"
    analysis = _call_llm(TRADE_CRITIQUE_SYSTEM, prompt)

    score = 50  # default
    match = _SCORE_PATTERN.search(analysis)
    if match:
        score = min(int(match.group(1)), 100)

    return {"analysis": analysis, "discipline_score": score}
