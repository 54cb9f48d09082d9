"""Exception types raised by the sentiment aggregator."""


class SentimentAggregatorError(Exception):
    """Base class for all errors raised by this package."""


class StoreError(SentimentAggregatorError):
    """The time-series store could not be read or written."""


class SourceError(SentimentAggregatorError):
    """A source adapter could not produce a tally."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class CycleInProgressError(SentimentAggregatorError):
    """A manual refresh was rejected because a cycle is already running."""
