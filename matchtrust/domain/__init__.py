"""Domain models for the matching and trust engine."""

from .models import (
    OPEN_ENGAGEMENT_STATUSES,
    Engagement,
    EngagementStatus,
    GeoPoint,
    IdentityDocuments,
    PriceRange,
    Provider,
    RatingSummary,
    Review,
    SearchPreference,
    Sentiment,
    SentimentTally,
    ServiceCategory,
    SortKey,
    TrustFactors,
    TrustRecord,
    TrustStatus,
    VerificationState,
    VerificationStatus,
)

__all__ = [
    "Provider",
    "Review",
    "Engagement",
    "GeoPoint",
    "RatingSummary",
    "IdentityDocuments",
    "TrustFactors",
    "TrustRecord",
    "VerificationState",
    "SentimentTally",
    "PriceRange",
    "SearchPreference",
    "ServiceCategory",
    "VerificationStatus",
    "TrustStatus",
    "EngagementStatus",
    "OPEN_ENGAGEMENT_STATUSES",
    "Sentiment",
    "SortKey",
]
