"""
Sentiment labelling for the refresh pipeline.

The compound score comes from an external scoring capability and is stored
verbatim; this module only maps it onto a discrete label. ``VaderScorer``
adapts NLTK's VADER analyzer to the ``score(text) -> float`` contract.
"""
import logging
from typing import Callable

import nltk
from nltk.sentiment.vader import SentimentIntensityAnalyzer

logger = logging.getLogger(__name__)

POSITIVE = "positive"
NEUTRAL = "neutral"
NEGATIVE = "negative"

POSITIVE_THRESHOLD = 0.05
NEGATIVE_THRESHOLD = -0.05

# score(text) -> compound in [-1, 1]
Scorer = Callable[[str], float]


def label_from_score(compound: float) -> str:
    """Map a compound score to positive / neutral / negative."""
    if compound >= POSITIVE_THRESHOLD:
        return POSITIVE
    if compound <= NEGATIVE_THRESHOLD:
        return NEGATIVE
    return NEUTRAL


class VaderScorer:
    """Callable wrapper around NLTK's VADER ``SentimentIntensityAnalyzer``."""

    def __init__(self, download_lexicon: bool = True):
        self.download_lexicon = download_lexicon
        self._analyzer = None

    def _load(self):
        if self.download_lexicon:
            try:
                nltk.data.find("sentiment/vader_lexicon.zip")
            except LookupError:
                logger.info("VADER lexicon not found locally, downloading it")
                nltk.download("vader_lexicon", quiet=True)

        self._analyzer = SentimentIntensityAnalyzer()
        logger.info("VADER sentiment analyzer initialized")
        return self._analyzer

    def __call__(self, text: str) -> float:
        analyzer = self._analyzer or self._load()
        return float(analyzer.polarity_scores(text)["compound"])
