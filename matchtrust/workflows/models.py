"""Results returned by workflows."""

from dataclasses import dataclass
from typing import Optional

from matchtrust.domain.models import Provider, Review, TrustRecord


@dataclass(frozen=True)
class ReviewOutcome:
    """Result of recording a review.

    Attributes:
        review: The stored review
        provider: Provider re-read after the trust recompute
        trust_record: New trust record, None if the recompute failed
        trust_error: Why the recompute failed, if it did
    """

    review: Review
    provider: Provider
    trust_record: Optional[TrustRecord] = None
    trust_error: Optional[str] = None

    @property
    def trust_stale(self) -> bool:
        return self.trust_record is None


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of an administrator verification decision."""

    provider: Provider
    trust_record: Optional[TrustRecord] = None
    trust_error: Optional[str] = None

    @property
    def trust_stale(self) -> bool:
        return self.trust_record is None
