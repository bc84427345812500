"""Recommendation search: availability filtering, scoring, and ranking."""

from .availability import AvailabilityFilter
from .engine import RecommendationEngine
from .exceptions import InvalidQuery
from .models import ScoredProvider
from .query import preference_from_query
from .scoring import ScoreBreakdown, score_candidate

__all__ = [
    "AvailabilityFilter",
    "InvalidQuery",
    "RecommendationEngine",
    "ScoreBreakdown",
    "ScoredProvider",
    "preference_from_query",
    "score_candidate",
]
