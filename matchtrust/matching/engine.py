"""Recommendation search.

A search runs in these steps:
1. Validate the request (absent or (0, 0) coordinates give an empty result)
2. Retrieve candidates matching the hard filters near the requester,
   over-fetching to leave room for later exclusions
3. Fall back to a full scan if the proximity query errors
4. Drop providers that are inactive, unverified, or currently booked
5. Score each remaining candidate and drop those beyond the radius or
   below the rating floor
6. Sort by the requested key and truncate to the limit

Searches share no mutable state, so any number may run concurrently.
"""

import math
import time
import uuid
from typing import Callable, Dict, List, Optional, Set, Tuple

from matchtrust.collaborators.base import CandidateFilters, CandidateSource, EngagementStateSource
from matchtrust.collaborators.bounded import BoundedCaller
from matchtrust.collaborators.exceptions import CollaboratorTimeoutError, CollaboratorUnavailable
from matchtrust.config.models import SearchConfig
from matchtrust.domain.models import GeoPoint, Provider, SearchPreference, SortKey
from matchtrust.logging import get_logger, log_context
from matchtrust.utils.geo import haversine_km, is_valid_coordinate

from .availability import AvailabilityFilter
from .exceptions import InvalidQuery
from .models import ScoredProvider
from .scoring import score_candidate

logger = get_logger(__name__, component="matching")

SortKeyFunc = Callable[[ScoredProvider], Tuple]

_SORT_KEYS: Dict[SortKey, SortKeyFunc] = {
    SortKey.RECOMMENDATION: lambda r: (-r.score, -r.provider.trust.score, r.provider_id),
    SortKey.RATING: lambda r: (-r.provider.rating.average, r.provider_id),
    SortKey.PRICE: lambda r: (r.provider.expected_price, r.provider_id),
    SortKey.DISTANCE: lambda r: (r.distance_km, r.provider_id),
}


class RecommendationEngine:
    """Ranks bookable providers for a requester.

    Candidate and engagement-state retrieval run through a BoundedCaller,
    so a slow collaborator fails the search with CollaboratorTimeoutError
    instead of hanging it.
    """

    def __init__(
        self,
        candidates: CandidateSource,
        engagements: EngagementStateSource,
        settings: Optional[SearchConfig] = None,
        availability: Optional[AvailabilityFilter] = None,
        caller: Optional[BoundedCaller] = None,
    ):
        """Initialize RecommendationEngine.

        Args:
            candidates: Candidate retrieval collaborator
            engagements: Engagement-state collaborator
            settings: Search settings (defaults used when omitted)
            availability: Availability filter (a fresh one when omitted)
            caller: Time-bounded caller for collaborator calls
        """
        self.candidates = candidates
        self.engagements = engagements
        self.settings = settings or SearchConfig()
        self.availability = availability or AvailabilityFilter()
        self.caller = caller or BoundedCaller(self.settings.retrieval_timeout_seconds)

    def search(self, preferences: SearchPreference, limit: Optional[int] = None) -> List[ScoredProvider]:
        """Rank providers for ``preferences``.

        Args:
            preferences: Search request
            limit: Maximum number of results (configured default when None)

        Returns:
            Results ordered by the requested sort key; empty when the request
            has no location or its coordinates are out of range

        Raises:
            InvalidQuery: If the limit is out of range
            CollaboratorTimeoutError: If retrieval exceeds its time bound
            CollaboratorUnavailable: If the fallback scan or the
                engagement-state retrieval fails
        """
        limit = self._resolve_limit(limit)

        if not preferences.has_location:
            logger.info(
                "Search without location returns no results",
                extra={"event": "search.no_location"},
            )
            return []
        if not preferences.has_valid_coordinates:
            logger.warning(
                f"Search with invalid coordinates ({preferences.latitude}, "
                f"{preferences.longitude}) returns no results",
                extra={"event": "search.invalid_location"},
            )
            return []

        origin = GeoPoint(latitude=preferences.latitude, longitude=preferences.longitude)
        filters = CandidateFilters.from_preference(preferences)
        fetch_limit = limit * self.settings.overfetch_factor

        with log_context(search_id=uuid.uuid4().hex[:12], sort_by=preferences.sort_by.value):
            start = time.monotonic()

            pool, degraded = self._retrieve(origin, preferences.max_distance_km, filters, fetch_limit)
            open_ids = self._open_engagements()
            eligible = self.availability.filter(pool, open_ids)

            results = []
            for provider in eligible:
                if provider.rating.average < preferences.min_rating:
                    continue
                result = self._score(provider, origin, preferences)
                if result is not None:
                    results.append(result)

            results.sort(key=_SORT_KEYS[preferences.sort_by])
            results = results[:limit]

            logger.info(
                f"Search returned {len(results)} providers",
                extra={
                    "event": "search.completed",
                    "candidates": len(pool),
                    "eligible": len(eligible),
                    "returned": len(results),
                    "degraded": degraded,
                    "duration_ms": round((time.monotonic() - start) * 1000, 1),
                },
            )
            return results

    def nearby(
        self,
        latitude: float,
        longitude: float,
        max_distance_km: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[ScoredProvider]:
        """Bookable providers within the radius, nearest first, without scoring.

        Raises:
            InvalidQuery: If the coordinates, radius, or limit are invalid
        """
        limit = self._resolve_limit(limit)
        radius = max_distance_km if max_distance_km is not None else self.settings.default_max_distance_km
        if not (isinstance(radius, (int, float)) and math.isfinite(radius) and radius > 0):
            raise InvalidQuery(f"max_distance_km must be positive, got: {radius}", field="max_distance_km")
        if not is_valid_coordinate(latitude, longitude):
            raise InvalidQuery(f"Invalid coordinates: ({latitude}, {longitude})", field="coordinates")

        origin = GeoPoint(latitude=latitude, longitude=longitude)
        pool, _ = self._retrieve(origin, radius, CandidateFilters(), limit * self.settings.overfetch_factor)
        eligible = self.availability.filter(pool, self._open_engagements())

        results = []
        for provider in eligible:
            distance = self._distance(origin, provider)
            if distance <= radius:
                results.append(ScoredProvider(provider=provider, score=0.0, distance_km=distance))
        results.sort(key=_SORT_KEYS[SortKey.DISTANCE])
        return results[:limit]

    def _resolve_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.settings.default_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidQuery(f"limit must be a positive integer, got: {limit!r}", field="limit")
        return min(limit, self.settings.max_limit)

    def _retrieve(
        self, origin: GeoPoint, radius_km: float, filters: CandidateFilters, fetch_limit: int
    ) -> Tuple[List[Provider], bool]:
        """Proximity query, degrading to a full scan if it errors.

        Returns:
            Tuple of (candidates, degraded)
        """
        try:
            pool = self.caller.call(
                "candidate_source.find_near",
                self.candidates.find_near,
                origin,
                radius_km,
                filters,
                fetch_limit,
            )
            return pool, False
        except CollaboratorTimeoutError:
            raise
        except CollaboratorUnavailable as e:
            logger.warning(
                f"Proximity retrieval unavailable, scanning all candidates: {e}",
                extra={"event": "search.degraded_to_scan", "error": str(e)},
            )

        pool = self.caller.call("candidate_source.scan", self.candidates.scan, filters)
        # The scan is unordered and unbounded; keep the nearest candidates
        pool = sorted(pool, key=lambda p: (self._distance(origin, p), p.provider_id))
        return pool[:fetch_limit], True

    def _open_engagements(self) -> Set[str]:
        return set(
            self.caller.call(
                "engagement_state.open_engagement_provider_ids",
                self.engagements.open_engagement_provider_ids,
            )
        )

    def _score(
        self, provider: Provider, origin: GeoPoint, preferences: SearchPreference
    ) -> Optional[ScoredProvider]:
        distance = self._distance(origin, provider)
        breakdown = score_candidate(
            provider,
            distance_km=distance,
            max_distance_km=preferences.max_distance_km,
            requested_skills=preferences.skills,
            price_range=preferences.price_range,
            decay_step=self.settings.price_decay_step,
            decay_points=self.settings.price_decay_points,
        )
        if breakdown is None:
            return None
        return ScoredProvider(
            provider=provider, score=breakdown.total, distance_km=distance, breakdown=breakdown
        )

    @staticmethod
    def _distance(origin: GeoPoint, provider: Provider) -> float:
        return haversine_km(
            origin.latitude, origin.longitude, provider.location.latitude, provider.location.longitude
        )
