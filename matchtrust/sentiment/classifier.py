"""Lexical sentiment classification for review comments.

The classifier counts positive and negative keyword hits in a comment and
labels it by the sign of the difference. It is deliberately explainable:
the same text always yields the same label, and the keyword hits that
produced it can be inspected through ``analyze``.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional

from matchtrust.domain.models import Sentiment
from matchtrust.utils.text import tokenize

from .lexicon import NEGATIVE_TERMS, POSITIVE_TERMS


@dataclass(frozen=True)
class SentimentAnalysis:
    """Outcome of classifying one piece of text.

    Attributes:
        sentiment: Resulting label
        score: positive_hits - negative_hits
        positive_hits: Tokens that matched the positive lexicon, in text order
        negative_hits: Tokens that matched the negative lexicon, in text order
    """

    sentiment: Sentiment
    score: int = 0
    positive_hits: List[str] = field(default_factory=list)
    negative_hits: List[str] = field(default_factory=list)


class SentimentClassifier:
    """Classifies free text into positive, neutral, or negative.

    Instances are immutable after construction, so a single classifier can be
    shared across threads without locking.
    """

    __slots__ = ("_positive", "_negative")

    def __init__(
        self,
        positive_terms: Optional[Iterable[str]] = None,
        negative_terms: Optional[Iterable[str]] = None,
    ):
        """Initialize classifier with keyword sets.

        Args:
            positive_terms: Replacement positive lexicon (defaults to built-in)
            negative_terms: Replacement negative lexicon (defaults to built-in)

        Raises:
            ValueError: If a term ends up in both lexicons
        """
        self._positive: FrozenSet[str] = (
            frozenset(t.strip().lower() for t in positive_terms if t.strip())
            if positive_terms is not None
            else POSITIVE_TERMS
        )
        self._negative: FrozenSet[str] = (
            frozenset(t.strip().lower() for t in negative_terms if t.strip())
            if negative_terms is not None
            else NEGATIVE_TERMS
        )
        conflicts = self._positive & self._negative
        if conflicts:
            raise ValueError(
                f"Terms cannot be both positive and negative: {', '.join(sorted(conflicts))}"
            )

    @property
    def positive_terms(self) -> FrozenSet[str]:
        return self._positive

    @property
    def negative_terms(self) -> FrozenSet[str]:
        return self._negative

    def analyze(self, text: Optional[str]) -> SentimentAnalysis:
        """Classify text and report which keywords drove the decision.

        Empty, whitespace-only, or None input is neutral.

        Args:
            text: Review comment or any other free text

        Returns:
            SentimentAnalysis with label, score and keyword hits
        """
        if text is None or not text.strip():
            return SentimentAnalysis(sentiment=Sentiment.NEUTRAL)

        positive_hits = []
        negative_hits = []
        for token in tokenize(text):
            if token in self._positive:
                positive_hits.append(token)
            elif token in self._negative:
                negative_hits.append(token)

        score = len(positive_hits) - len(negative_hits)
        if score > 0:
            sentiment = Sentiment.POSITIVE
        elif score < 0:
            sentiment = Sentiment.NEGATIVE
        else:
            sentiment = Sentiment.NEUTRAL

        return SentimentAnalysis(
            sentiment=sentiment,
            score=score,
            positive_hits=positive_hits,
            negative_hits=negative_hits,
        )

    def classify(self, text: Optional[str]) -> Sentiment:
        """Return only the sentiment label for text."""
        return self.analyze(text).sentiment
