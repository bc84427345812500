"""Core domain models for providers, reviews, engagements, and trust.

This module defines the data structures used throughout the application:
- Provider: a worker's public matching profile
- Review: a rating and optional comment attesting one completed engagement
- Engagement: booking state consumed by availability filtering
- TrustFactors / TrustRecord: normalized trust sub-scores and their aggregate
- SearchPreference: the explicit, fully-enumerated search request
"""

import math
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from matchtrust.utils.timestamps import ensure_utc


class ServiceCategory(str, Enum):
    """Services a provider can offer."""

    CLEANING = "cleaning"
    COOKING = "cooking"
    BABYSITTING = "babysitting"
    ELDERLY_CARE = "elderly_care"


class VerificationStatus(str, Enum):
    """Administrator verification state of a provider."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class TrustStatus(str, Enum):
    """Label attached to a trust score."""

    TRUSTED = "Trusted"
    VERIFIED = "Verified"
    NEEDS_REVIEW = "Needs Review"


class EngagementStatus(str, Enum):
    """Lifecycle status of an engagement (booking)."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


OPEN_ENGAGEMENT_STATUSES = frozenset({EngagementStatus.PENDING, EngagementStatus.ACCEPTED})


class Sentiment(str, Enum):
    """Coarse polarity of a review comment."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class SortKey(str, Enum):
    """Orderings supported by recommendation search."""

    RECOMMENDATION = "recommendation"
    RATING = "rating"
    PRICE = "price"
    DISTANCE = "distance"


class GeoPoint(BaseModel):
    """WGS84 coordinate in degrees."""

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

    model_config = {"frozen": True}


class RatingSummary(BaseModel):
    """Running average of review ratings.

    The average is maintained incrementally with ``add_rating``; it is never
    recomputed from the full review history.
    """

    average: float = Field(0.0, ge=0.0, le=5.0)
    count: int = Field(0, ge=0)

    model_config = {"frozen": True}

    def add_rating(self, rating: int) -> "RatingSummary":
        """Return a new summary with ``rating`` folded into the running mean.

        Args:
            rating: Integer rating in [1, 5]

        Returns:
            RatingSummary with count + 1 and the updated mean
        """
        if not 1 <= rating <= 5:
            raise ValueError(f"rating must be between 1 and 5, got: {rating}")
        new_count = self.count + 1
        new_average = (self.average * self.count + rating) / new_count
        return RatingSummary(average=min(5.0, max(0.0, new_average)), count=new_count)


class IdentityDocuments(BaseModel):
    """Verification flags for the two required identity documents."""

    identity_verified: bool = False
    tax_verified: bool = False

    model_config = {"frozen": True}

    @property
    def all_verified(self) -> bool:
        return self.identity_verified and self.tax_verified


class TrustFactors(BaseModel):
    """Normalized trust sub-scores, each in [0, 1]."""

    document_verification: float = Field(0.0, ge=0.0, le=1.0)
    review_sentiment: float = Field(0.0, ge=0.0, le=1.0)
    rating_average: float = Field(0.0, ge=0.0, le=1.0)
    experience: float = Field(0.0, ge=0.0, le=1.0)
    response_rate: float = Field(0.0, ge=0.0, le=1.0)

    model_config = {"frozen": True}


class TrustRecord(BaseModel):
    """Aggregate trust score of a provider with its status label.

    A provider that has never been scored carries the default record:
    score 0, ``Needs Review``, no factors.
    """

    score: float = Field(0.0, ge=0.0, le=100.0)
    status: TrustStatus = TrustStatus.NEEDS_REVIEW
    factors: Optional[TrustFactors] = None
    last_updated: Optional[datetime] = None

    model_config = {"frozen": True}

    @field_validator("last_updated")
    @classmethod
    def _ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class Provider(BaseModel):
    """A service worker's matching profile.

    Profile fields are owned by the provider; ``verification_status``,
    ``documents``, ``rating`` and ``trust`` are maintained by the
    verification, review, and trust subsystems.
    """

    provider_id: str = Field(..., min_length=1, description="Stable provider identifier")
    display_name: str = Field("", description="Public name shown to requesters")
    skills: FrozenSet[ServiceCategory] = Field(default_factory=frozenset)
    experience_years: int = Field(0, ge=0)
    expected_price: float = Field(0.0, ge=0.0)
    location: GeoPoint
    rating: RatingSummary = Field(default_factory=RatingSummary)
    trust: TrustRecord = Field(default_factory=TrustRecord)
    verification_status: VerificationStatus = VerificationStatus.PENDING
    documents: IdentityDocuments = Field(default_factory=IdentityDocuments)
    is_active: bool = True
    created_at: Optional[datetime] = None

    @field_validator("created_at")
    @classmethod
    def _ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def is_verified(self) -> bool:
        return self.verification_status == VerificationStatus.VERIFIED

    model_config = {"json_schema_extra": {"example": {
        "provider_id": "p-001",
        "display_name": "Sunita Devi",
        "skills": ["cleaning", "cooking"],
        "experience_years": 6,
        "expected_price": 8000,
        "location": {"latitude": 28.6140, "longitude": 77.2100},
        "rating": {"average": 4.5, "count": 12},
        "trust": {"score": 85.0, "status": "Trusted"},
        "verification_status": "verified",
        "is_active": True,
    }}}


class Review(BaseModel):
    """A rating for one completed engagement. Immutable once created."""

    review_id: str = Field(..., min_length=1)
    provider_id: str = Field(..., min_length=1)
    engagement_id: str = Field(..., min_length=1)
    reviewer_id: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""
    sentiment: Sentiment = Sentiment.NEUTRAL
    created_at: datetime

    model_config = {"frozen": True}

    @field_validator("comment", mode="before")
    @classmethod
    def _strip_comment(cls, v: Optional[str]) -> str:
        return (v or "").strip()

    @field_validator("created_at")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class Engagement(BaseModel):
    """Booking state between a requester and a provider."""

    engagement_id: str = Field(..., min_length=1)
    provider_id: str = Field(..., min_length=1)
    requester_id: Optional[str] = None
    status: EngagementStatus = EngagementStatus.PENDING
    created_at: datetime
    responded_at: Optional[datetime] = None

    @field_validator("created_at", "responded_at")
    @classmethod
    def _ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def is_open(self) -> bool:
        """Open engagements make their provider unavailable for new matches."""
        return self.status in OPEN_ENGAGEMENT_STATUSES


class VerificationState(BaseModel):
    """Verification inputs consumed by trust computation."""

    status: VerificationStatus
    documents_verified: bool = False

    model_config = {"frozen": True}


class SentimentTally(BaseModel):
    """Count of review sentiment labels for one provider."""

    positive: int = Field(0, ge=0)
    neutral: int = Field(0, ge=0)
    negative: int = Field(0, ge=0)

    model_config = {"frozen": True}

    @property
    def total(self) -> int:
        return self.positive + self.neutral + self.negative

    @property
    def balance(self) -> float:
        """(positive - negative) / max(1, total), in [-1, 1]."""
        return (self.positive - self.negative) / max(1, self.total)


class PriceRange(BaseModel):
    """Optional lower and upper price bounds; a missing bound is open."""

    min_price: Optional[float] = Field(None, ge=0.0)
    max_price: Optional[float] = Field(None, ge=0.0)

    model_config = {"frozen": True, "extra": "forbid"}

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.min_price is None and self.max_price is None:
            raise ValueError("price range needs at least one of min_price or max_price")
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValueError(
                f"min_price ({self.min_price}) cannot exceed max_price ({self.max_price})"
            )
        return self

    def contains(self, price: float) -> bool:
        if self.min_price is not None and price < self.min_price:
            return False
        if self.max_price is not None and price > self.max_price:
            return False
        return True

    def distance_outside(self, price: float) -> float:
        """How far ``price`` lies outside the range (0 when inside)."""
        if self.min_price is not None and price < self.min_price:
            return self.min_price - price
        if self.max_price is not None and price > self.max_price:
            return price - self.max_price
        return 0.0


class SearchPreference(BaseModel):
    """Explicit search request.

    Unknown fields are rejected rather than ignored. Coordinates are optional
    at the model level so that a request without a location can still be
    represented; recommendation search treats it as "no location" and returns
    nothing.

    Defaults:
    - max_distance_km: 10
    - skills: empty (no skill filtering, full skill points)
    - min_experience: 0
    - price_range: None (no price filtering, full price points)
    - min_rating: 0
    - sort_by: recommendation
    """

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    max_distance_km: float = Field(10.0, gt=0.0)
    skills: FrozenSet[ServiceCategory] = Field(default_factory=frozenset)
    min_experience: int = Field(0, ge=0)
    price_range: Optional[PriceRange] = None
    min_rating: float = Field(0.0, ge=0.0, le=5.0)
    sort_by: SortKey = SortKey.RECOMMENDATION

    model_config = {"frozen": True, "extra": "forbid"}

    @model_validator(mode="after")
    def _check_coordinates_paired(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        return self

    @property
    def has_location(self) -> bool:
        """False when coordinates are absent or the (0, 0) "no location" sentinel."""
        if self.latitude is None or self.longitude is None:
            return False
        if self.latitude == 0 and self.longitude == 0:
            return False
        return True

    @property
    def has_valid_coordinates(self) -> bool:
        if self.latitude is None or self.longitude is None:
            return False
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            return False
        return -90.0 <= self.latitude <= 90.0 and -180.0 <= self.longitude <= 180.0
