"""Tests for the pydantic DTOs."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from sentiment_aggregator.models.dtos import (
    ALL_TICKERS,
    AlertResponse,
    AlertType,
    CurrentSentimentResponse,
    Reading,
    SentimentLabel,
    SourceTally,
    compute_percentages,
)

TS = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_from_counts_derives_total_and_percentages():
    tally = SourceTally.from_counts("stocktwits", 6, 3, 1, ticker="SPY")
    assert tally.total == 10
    assert tally.bullish_pct == pytest.approx(60.0)
    assert tally.bearish_pct == pytest.approx(30.0)
    assert tally.neutral_pct == pytest.approx(10.0)
    assert tally.ticker == "SPY"


def test_percentages_sum_to_hundred():
    tally = SourceTally.from_counts("reddit", 1, 1, 1)
    assert tally.bullish_pct + tally.bearish_pct + tally.neutral_pct == pytest.approx(100.0)


def test_zero_counts_give_zero_percentages():
    assert compute_percentages(0, 0, 0) == {"bullish_pct": 0.0, "bearish_pct": 0.0, "neutral_pct": 0.0}
    tally = SourceTally.from_counts("reddit", 0, 0, 0)
    assert tally.total == 0
    assert tally.ticker == ALL_TICKERS


def test_negative_counts_rejected():
    with pytest.raises(ValidationError):
        SourceTally(source="reddit", bullish=-1)


def test_add_returns_new_tally():
    empty = SourceTally.from_counts("twitter", 0, 0, 0)
    one = empty.add(SentimentLabel.BEARISH)
    assert empty.total == 0
    assert one.bearish == 1
    assert one.total == 1
    assert one.bearish_pct == pytest.approx(100.0)
    two = one.add(SentimentLabel.NEUTRAL)
    assert two.neutral_pct == pytest.approx(50.0)


def test_reading_from_tally_copies_counts():
    tally = SourceTally.from_counts("stocktwits", 2, 2, 0, ticker="QQQ")
    reading = Reading.from_tally(tally, TS)
    assert reading.id is None
    assert reading.timestamp == TS
    assert reading.source == "stocktwits"
    assert reading.ticker == "QQQ"
    assert (reading.bullish, reading.bearish, reading.total) == (2, 2, 4)
    assert reading.bullish_pct == pytest.approx(50.0)


def test_response_models_use_camel_case():
    current = CurrentSentimentResponse(
        bullish_pct=60.0,
        bearish_pct=30.0,
        neutral_pct=10.0,
        total_posts=10,
        timestamp=TS,
    )
    dumped = current.model_dump(by_alias=True)
    assert set(dumped) == {
        "bullishPct", "bearishPct", "neutralPct", "totalPosts", "extremeSignal", "timestamp", "message",
    }

    alert = AlertResponse(
        id=1,
        timestamp=TS,
        alert_type=AlertType.EXTREME_BULLISH,
        sentiment_pct=95.0,
        message="m",
        acknowledged=False,
    )
    dumped = alert.model_dump(by_alias=True, mode="json")
    assert dumped["alertType"] == "EXTREME_BULLISH"
    assert dumped["sentimentPct"] == 95.0
