"""Tests for the keyword classifier."""

import unittest

from sentiment_aggregator.core.classifier import KeywordClassifier, classify_sentiment
from sentiment_aggregator.models.dtos import SentimentLabel


class TestClassifySentiment(unittest.TestCase):

    def test_no_keywords_is_neutral(self):
        self.assertEqual(classify_sentiment("the market might go up or down"), SentimentLabel.NEUTRAL)

    def test_bullish_text(self):
        self.assertEqual(classify_sentiment("Loading calls, SPY to the moon"), SentimentLabel.BULLISH)

    def test_bearish_text(self):
        self.assertEqual(classify_sentiment("Buying puts before the crash"), SentimentLabel.BEARISH)

    def test_case_insensitive(self):
        self.assertEqual(classify_sentiment("MOON MOON"), SentimentLabel.BULLISH)

    def test_tie_is_neutral(self):
        # one bullish keyword ("calls") against one bearish keyword ("puts")
        self.assertEqual(classify_sentiment("calls and puts"), SentimentLabel.NEUTRAL)

    def test_substring_matches_count(self):
        # "bullish" also contains "bull"
        classifier = KeywordClassifier()
        self.assertEqual(classifier.score("bullish"), (2, 0))

    def test_keyword_counts_once(self):
        classifier = KeywordClassifier()
        self.assertEqual(classifier.score("moon moon moon"), (1, 0))

    def test_empty_and_non_string_are_neutral(self):
        self.assertEqual(classify_sentiment(""), SentimentLabel.NEUTRAL)
        self.assertEqual(classify_sentiment(None), SentimentLabel.NEUTRAL)

    def test_deterministic(self):
        text = "tank it, short everything, maybe a bounce"
        first = classify_sentiment(text)
        for _ in range(5):
            self.assertEqual(classify_sentiment(text), first)

    def test_custom_keywords(self):
        classifier = KeywordClassifier(bullish_keywords=["Up"], bearish_keywords=["down"])
        self.assertEqual(classifier.classify("up up and away"), SentimentLabel.BULLISH)
        self.assertEqual(classifier.classify("going down"), SentimentLabel.BEARISH)


if __name__ == "__main__":
    unittest.main()
