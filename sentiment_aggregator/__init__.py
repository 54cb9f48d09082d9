"""Social Sentiment Aggregator: contrarian retail sentiment from StockTwits, Reddit and Twitter/X."""

__version__ = "0.1.0"
