"""Sentiment classification for review comments.

This module provides:
- SentimentClassifier: lexical polarity scorer (positive/neutral/negative)
- SentimentAnalysis: label plus the keyword hits behind it
- POSITIVE_TERMS / NEGATIVE_TERMS: the built-in lexicon
"""

from .classifier import SentimentAnalysis, SentimentClassifier
from .lexicon import NEGATIVE_TERMS, POSITIVE_TERMS

__all__ = [
    "SentimentClassifier",
    "SentimentAnalysis",
    "POSITIVE_TERMS",
    "NEGATIVE_TERMS",
]
