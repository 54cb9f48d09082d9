"""
Models package for the Sentiment Aggregator service.

This package contains the Pydantic DTOs and the SQLAlchemy ORM models used
by the SQLAlchemy store backend.
"""

# Import DTOs for easy access
from .dtos import (
    ALL_TICKERS,
    AggregateResult,
    AggregateSnapshot,
    Alert,
    AlertType,
    ExtremeSignal,
    Reading,
    SentimentLabel,
    SourceTally,
    compute_percentages,
    utc_now,
)

# Define what is exported with 'from sentiment_aggregator.models import *'
__all__ = [
    "ALL_TICKERS",
    "AggregateResult",
    "AggregateSnapshot",
    "Alert",
    "AlertType",
    "ExtremeSignal",
    "Reading",
    "SentimentLabel",
    "SourceTally",
    "compute_percentages",
    "utc_now",
]
