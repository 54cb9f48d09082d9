"""
Keyword-based text classifier.

Maps a post to bullish, bearish or neutral by comparing how many keywords of
each set it mentions. Used by the sources that carry no native sentiment tag.
"""
from typing import Iterable, Tuple

from sentiment_aggregator.models.dtos import SentimentLabel

BULLISH_KEYWORDS: Tuple[str, ...] = (
    "bullish", "bull", "long", "calls", "buy", "moon", "pump", "rip",
    "green", "rocket", "ath", "breakout", "higher", "uppies",
)
BEARISH_KEYWORDS: Tuple[str, ...] = (
    "bearish", "bear", "short", "puts", "sell", "dump", "crash", "red",
    "drill", "tank", "drop", "lower", "downies", "fade",
)


class KeywordClassifier:
    """
    Classifies text by substring keyword hits.

    Each keyword counts at most once per text, so "bull bull bull" scores 1 for
    "bull" (and 0 for "bullish"). Ties, including no hits at all, are neutral.
    """

    def __init__(
        self,
        bullish_keywords: Iterable[str] = BULLISH_KEYWORDS,
        bearish_keywords: Iterable[str] = BEARISH_KEYWORDS,
    ):
        self.bullish_keywords = tuple(k.lower() for k in bullish_keywords)
        self.bearish_keywords = tuple(k.lower() for k in bearish_keywords)

    def score(self, text: str) -> Tuple[int, int]:
        """Return (bullish_hits, bearish_hits) for the text."""
        if not isinstance(text, str) or not text:
            return 0, 0
        lower_text = text.lower()
        bullish = sum(1 for keyword in self.bullish_keywords if keyword in lower_text)
        bearish = sum(1 for keyword in self.bearish_keywords if keyword in lower_text)
        return bullish, bearish

    def classify(self, text: str) -> SentimentLabel:
        bullish, bearish = self.score(text)
        if bullish > bearish:
            return SentimentLabel.BULLISH
        if bearish > bullish:
            return SentimentLabel.BEARISH
        return SentimentLabel.NEUTRAL


_default_classifier = KeywordClassifier()


def classify_sentiment(text: str) -> SentimentLabel:
    """Classify text with the default keyword sets."""
    return _default_classifier.classify(text)
