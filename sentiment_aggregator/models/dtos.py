"""
Pydantic Data Transfer Objects (DTOs) for the Sentiment Aggregator service.

These models are used by the source adapters, the aggregator, every store
backend and, through the API response models, the HTTP layer.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ALL_TICKERS = "ALL"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def compute_percentages(bullish: int, bearish: int, neutral: int) -> Dict[str, float]:
    """Return bullish/bearish/neutral shares of the total in percent (all 0 when empty)."""
    total = bullish + bearish + neutral
    if total <= 0:
        return {"bullish_pct": 0.0, "bearish_pct": 0.0, "neutral_pct": 0.0}
    return {
        "bullish_pct": bullish / total * 100,
        "bearish_pct": bearish / total * 100,
        "neutral_pct": neutral / total * 100,
    }


class SentimentLabel(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class ExtremeSignal(str, Enum):
    EXTREME_BULLISH = "EXTREME_BULLISH"
    EXTREME_BEARISH = "EXTREME_BEARISH"
    HIGH_BULLISH = "HIGH_BULLISH"
    HIGH_BEARISH = "HIGH_BEARISH"


class AlertType(str, Enum):
    EXTREME_BULLISH = "EXTREME_BULLISH"
    EXTREME_BEARISH = "EXTREME_BEARISH"


class SentimentCounts(BaseModel):
    """Counts plus the derived total and percentages shared by tallies and readings."""
    bullish: int = Field(0, ge=0)
    bearish: int = Field(0, ge=0)
    neutral: int = Field(0, ge=0)
    total: int = Field(0, ge=0)
    bullish_pct: float = 0.0
    bearish_pct: float = 0.0
    neutral_pct: float = 0.0

    model_config = ConfigDict(from_attributes=True)


class SourceTally(SentimentCounts):
    """
    DTO for one source's sentiment counts for one scrape cycle.

    Produced by the source adapters. Always build it through `from_counts`
    so `total` and the percentages agree with the counts.
    """
    source: str
    ticker: str = ALL_TICKERS

    @classmethod
    def from_counts(
        cls,
        source: str,
        bullish: int,
        bearish: int,
        neutral: int,
        ticker: Optional[str] = None,
    ) -> "SourceTally":
        return cls(
            source=source,
            ticker=ticker or ALL_TICKERS,
            bullish=bullish,
            bearish=bearish,
            neutral=neutral,
            total=bullish + bearish + neutral,
            **compute_percentages(bullish, bearish, neutral),
        )

    def add(self, label: SentimentLabel) -> "SourceTally":
        """Return a new tally with one more post of the given label."""
        counts = {"bullish": self.bullish, "bearish": self.bearish, "neutral": self.neutral}
        counts[label.value] += 1
        return SourceTally.from_counts(self.source, ticker=self.ticker, **counts)


class Reading(SentimentCounts):
    """
    A persisted tally: one source (and optionally one ticker) for one cycle.

    `id` is assigned by the store and is None until the reading is appended.
    """
    id: Optional[int] = None
    timestamp: datetime = Field(default_factory=utc_now)
    source: str
    ticker: str = ALL_TICKERS

    @classmethod
    def from_tally(cls, tally: SourceTally, timestamp: Optional[datetime] = None) -> "Reading":
        return cls(
            timestamp=timestamp or utc_now(),
            **tally.model_dump(),
        )


class AggregateSnapshot(BaseModel):
    """
    The cycle-wide, volume-weighted combination of all readings in one cycle.
    """
    id: Optional[int] = None
    timestamp: datetime = Field(default_factory=utc_now)
    bullish_pct: float = 0.0
    bearish_pct: float = 0.0
    neutral_pct: float = 0.0
    total_posts: int = Field(0, ge=0)
    extreme_signal: Optional[ExtremeSignal] = None

    model_config = ConfigDict(from_attributes=True)


class Alert(BaseModel):
    """
    A notification that the aggregate crossed an extreme threshold.

    `acknowledged` only ever moves from False to True, through the store's
    acknowledge operation.
    """
    id: Optional[int] = None
    timestamp: datetime = Field(default_factory=utc_now)
    alert_type: AlertType
    sentiment_pct: float
    message: str
    acknowledged: bool = False

    model_config = ConfigDict(from_attributes=True)


class AggregateResult(BaseModel):
    """
    DTO returned by one aggregation cycle to its caller (scheduler, manual refresh).
    """
    timestamp: datetime
    bullish_pct: float
    bearish_pct: float
    neutral_pct: float
    total_posts: int
    extreme_signal: Optional[ExtremeSignal] = None
    sources: List[str] = Field(default_factory=list)
    alert: Optional[Alert] = None


# --- API response models (camelCase on the wire) ---

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class CurrentSentimentResponse(_CamelModel):
    bullish_pct: float
    bearish_pct: float
    neutral_pct: float
    total_posts: int
    extreme_signal: Optional[ExtremeSignal] = None
    timestamp: datetime
    message: Optional[str] = None


class HistoryPointResponse(_CamelModel):
    timestamp: datetime
    bullish_pct: float
    bearish_pct: float
    neutral_pct: float
    total_posts: int
    extreme_signal: Optional[ExtremeSignal] = None


class AlertResponse(_CamelModel):
    id: int
    timestamp: datetime
    alert_type: AlertType
    sentiment_pct: float
    message: str
    acknowledged: bool


class RefreshResultResponse(_CamelModel):
    timestamp: datetime
    bullish_pct: float
    bearish_pct: float
    neutral_pct: float
    total_posts: int
    extreme_signal: Optional[ExtremeSignal] = None
    sources: List[str] = Field(default_factory=list)


class RefreshResponse(_CamelModel):
    success: bool = True
    data: Optional[RefreshResultResponse] = None


class AckResponse(_CamelModel):
    success: bool = True
