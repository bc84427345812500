"""Interfaces of the external collaborators the core consumes.

The matching and trust engines never talk to storage directly. They depend
on these narrow abstract classes, which the persistence layer implements in
``matchtrust.collaborators.sql`` and tests implement in memory.

All methods may raise CollaboratorUnavailable.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Set

from matchtrust.domain.models import (
    GeoPoint,
    PriceRange,
    Provider,
    SearchPreference,
    SentimentTally,
    ServiceCategory,
    TrustRecord,
    VerificationState,
)


@dataclass(frozen=True)
class CandidateFilters:
    """Hard filters applied during candidate retrieval.

    Candidate sources must only return providers that are active, verified,
    have at least ``min_experience`` years, lie inside ``price_range`` (when
    set) and share at least one skill with ``skills`` (when non-empty).

    Attributes:
        skills: Requested skills; empty means no skill filtering
        min_experience: Experience floor in years
        price_range: Optional price window
    """

    skills: FrozenSet[ServiceCategory] = field(default_factory=frozenset)
    min_experience: int = 0
    price_range: Optional[PriceRange] = None

    @classmethod
    def from_preference(cls, preference: SearchPreference) -> "CandidateFilters":
        return cls(
            skills=preference.skills,
            min_experience=preference.min_experience,
            price_range=preference.price_range,
        )

    def accepts(self, provider: Provider) -> bool:
        """Evaluate the hard filters (including active + verified) in memory."""
        if not provider.is_active or not provider.is_verified:
            return False
        if provider.experience_years < self.min_experience:
            return False
        if self.price_range is not None and not self.price_range.contains(provider.expected_price):
            return False
        if self.skills and not (self.skills & provider.skills):
            return False
        return True


class CandidateSource(ABC):
    """Retrieves providers matching the hard filters."""

    @abstractmethod
    def find_near(
        self,
        origin: GeoPoint,
        max_distance_km: float,
        filters: CandidateFilters,
        limit: int,
    ) -> List[Provider]:
        """Proximity query: providers within ``max_distance_km``, nearest first.

        Args:
            origin: Requester location
            max_distance_km: Search radius
            filters: Hard filters
            limit: Maximum number of providers to return

        Returns:
            Up to ``limit`` providers ordered by distance
        """

    @abstractmethod
    def scan(self, filters: CandidateFilters) -> List[Provider]:
        """Unordered full scan over the hard filters, without proximity."""


class EngagementStateSource(ABC):
    """Reports which providers are currently engaged."""

    @abstractmethod
    def open_engagement_provider_ids(self) -> Set[str]:
        """Identifiers of providers with a pending or accepted engagement."""


class ProviderDirectory(ABC):
    """Looks up provider profiles by identifier."""

    @abstractmethod
    def get_provider(self, provider_id: str) -> Optional[Provider]:
        """Return the provider, or None when the identifier is unknown."""

    @abstractmethod
    def list_provider_ids(self) -> List[str]:
        """All known provider identifiers (used by the batch refresh)."""


class VerificationStateSource(ABC):
    """Supplies administrator verification status and document flags."""

    @abstractmethod
    def get_verification_state(self, provider_id: str) -> Optional[VerificationState]:
        """Return the verification state, or None when the provider is unknown."""


class ReviewStore(ABC):
    """Supplies sentiment-labelled review history."""

    @abstractmethod
    def sentiment_tally(self, provider_id: str) -> SentimentTally:
        """Counts of positive / neutral / negative reviews for a provider."""


class ResponsivenessSource(ABC):
    """Supplies the responsiveness metric used as a trust factor."""

    @abstractmethod
    def response_rate(self, provider_id: str) -> Optional[float]:
        """Fraction of assigned engagements accepted within the service window.

        Returns:
            Value in [0, 1], or None when no data is available
        """


class TrustRecordSink(ABC):
    """Persists computed trust records."""

    @abstractmethod
    def save_trust_record(self, provider_id: str, record: TrustRecord) -> None:
        """Store ``record`` as the provider's current trust record."""
