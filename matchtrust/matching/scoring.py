"""Composite recommendation score.

Points per factor (total 100):

========  ======  ============================================
Factor    Points  Formula
========  ======  ============================================
location  40      40 * (1 - distance / max_distance)
skill     25      25 * matched / requested (25 if none requested)
price     15      15 inside range, linear decay outside
rating    10      10 * average / 5
trust     10      10 * trust score / 100
========  ======  ============================================

Candidates beyond ``max_distance`` get no score at all.
"""

from dataclasses import dataclass
from typing import AbstractSet, Optional

from matchtrust.domain.models import PriceRange, Provider, ServiceCategory

LOCATION_POINTS = 40.0
SKILL_POINTS = 25.0
PRICE_POINTS = 15.0
RATING_POINTS = 10.0
TRUST_POINTS = 10.0

MAX_SCORE = 100.0
SCORE_PRECISION = 2

DEFAULT_PRICE_DECAY_STEP = 1000.0
DEFAULT_PRICE_DECAY_POINTS = 5.0


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-factor points of one candidate and their capped total."""

    location: float
    skill: float
    price: float
    rating: float
    trust: float
    total: float


def location_points(distance_km: float, max_distance_km: float) -> Optional[float]:
    """Points for proximity, or None when the candidate lies beyond the radius."""
    if distance_km > max_distance_km:
        return None
    return LOCATION_POINTS * (1.0 - distance_km / max_distance_km)


def skill_points(
    requested: AbstractSet[ServiceCategory], offered: AbstractSet[ServiceCategory]
) -> float:
    if not requested:
        return SKILL_POINTS
    return SKILL_POINTS * len(requested & offered) / len(requested)


def price_points(
    price: float,
    price_range: Optional[PriceRange],
    decay_step: float = DEFAULT_PRICE_DECAY_STEP,
    decay_points: float = DEFAULT_PRICE_DECAY_POINTS,
) -> float:
    """Full points inside the range, minus ``decay_points`` per ``decay_step`` outside."""
    if price_range is None:
        return PRICE_POINTS
    gap = price_range.distance_outside(price)
    if gap == 0:
        return PRICE_POINTS
    return max(0.0, PRICE_POINTS - gap / decay_step * decay_points)


def rating_points(rating_average: float) -> float:
    return RATING_POINTS * min(5.0, max(0.0, rating_average)) / 5.0


def trust_points(trust_score: float) -> float:
    return TRUST_POINTS * min(100.0, max(0.0, trust_score)) / 100.0


def score_candidate(
    provider: Provider,
    distance_km: float,
    max_distance_km: float,
    requested_skills: AbstractSet[ServiceCategory],
    price_range: Optional[PriceRange],
    decay_step: float = DEFAULT_PRICE_DECAY_STEP,
    decay_points: float = DEFAULT_PRICE_DECAY_POINTS,
) -> Optional[ScoreBreakdown]:
    """Score one candidate against a search.

    Args:
        provider: Candidate provider
        distance_km: Great-circle distance from the requester
        max_distance_km: Search radius
        requested_skills: Skills the requester asked for
        price_range: Requested price window, if any
        decay_step: Currency units per price decay step
        decay_points: Points lost per price decay step

    Returns:
        ScoreBreakdown with the total capped at 100 and rounded to two
        decimals, or None if the candidate is outside the radius
    """
    location = location_points(distance_km, max_distance_km)
    if location is None:
        return None

    skill = skill_points(requested_skills, provider.skills)
    price = price_points(provider.expected_price, price_range, decay_step, decay_points)
    rating = rating_points(provider.rating.average)
    trust = trust_points(provider.trust.score)

    total = min(MAX_SCORE, location + skill + price + rating + trust)
    return ScoreBreakdown(
        location=location,
        skill=skill,
        price=price,
        rating=rating,
        trust=trust,
        total=round(total, SCORE_PRECISION),
    )
