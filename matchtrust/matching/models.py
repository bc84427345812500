"""Result types of recommendation search."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from matchtrust.domain.models import Provider

from .scoring import ScoreBreakdown


@dataclass(frozen=True)
class ScoredProvider:
    """A ranked search result.

    Attributes:
        provider: Provider snapshot read at search time
        score: Composite recommendation score in [0, 100]
        distance_km: Great-circle distance from the requester
        breakdown: Per-factor points (None for nearby lookups, which do not score)
    """

    provider: Provider
    score: float
    distance_km: float
    breakdown: Optional[ScoreBreakdown] = None

    @property
    def provider_id(self) -> str:
        return self.provider.provider_id

    def to_dict(self) -> Dict[str, Any]:
        """Plain representation for JSON output."""
        data: Dict[str, Any] = {
            "provider_id": self.provider.provider_id,
            "display_name": self.provider.display_name,
            "score": self.score,
            "distance_km": round(self.distance_km, 3),
            "skills": sorted(s.value for s in self.provider.skills),
            "experience_years": self.provider.experience_years,
            "expected_price": self.provider.expected_price,
            "rating": self.provider.rating.average,
            "trust_score": self.provider.trust.score,
            "trust_status": self.provider.trust.status.value,
        }
        if self.breakdown is not None:
            data["breakdown"] = {
                "location": round(self.breakdown.location, 2),
                "skill": round(self.breakdown.skill, 2),
                "price": round(self.breakdown.price, 2),
                "rating": round(self.breakdown.rating, 2),
                "trust": round(self.breakdown.trust, 2),
            }
        return data
