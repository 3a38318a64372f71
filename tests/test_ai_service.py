"""Tests for the AI coaching service with the LLM call mocked out."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from backend.services import ai_service


def test_not_configured_without_key(monkeypatch):
    from config.settings import settings

    monkeypatch.setattr(settings, "AI_PROVIDER", "anthropic")
    monkeypatch.setattr(settings, "ANTHROPIC_API_KEY", "")
    with pytest.raises(ai_service.AIServiceNotConfigured):
        ai_service._call_llm("system", "user")


def test_review_sends_stats_and_recent_trades():
    trades = [{"id": i, "asset": "EURUSD", "pl_amt": 0.0, "what_failed": None} for i in range(30)]
    with patch.object(ai_service, "_call_llm", return_value="## Edge Summary") as llm:
        review = ai_service.review_journal({"win_rate": 55}, trades)

    assert review == "## Edge Summary"
    system, prompt = llm.call_args.args
    assert system == ai_service.JOURNAL_REVIEW_SYSTEM
    assert '"win_rate": 55' in prompt
    assert "Total entries: 30" in prompt
    # Only the last 20 entries are sent
    assert '"id": 9' not in prompt
    assert '"id": 10' in prompt
    # Zero P/L is kept, empty notes are dropped
    assert '"pl_amt": 0.0' in prompt
    assert "what_failed" not in prompt


class TestAnalyzeTrade:
    def test_extracts_score(self):
        with patch.object(ai_service, "_call_llm", return_value="## Discipline Score: 85/100\n..."):
            result = ai_service.analyze_trade({"asset": "NAS100", "forced_trade": True})
        assert result["discipline_score"] == 85
        assert result["analysis"].startswith("## Discipline Score")

    def test_defaults_when_score_missing(self):
        with patch.object(ai_service, "_call_llm", return_value="no score here"):
            assert ai_service.analyze_trade({"asset": "NAS100"})["discipline_score"] == 50

    def test_score_is_capped(self):
        with patch.object(ai_service, "_call_llm", return_value="Score: 140/100"):
            assert ai_service.analyze_trade({"asset": "NAS100"})["discipline_score"] == 100
