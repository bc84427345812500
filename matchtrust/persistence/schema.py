"""ORM models and conversions to and from domain models.

Timestamps are stored as ISO 8601 UTC strings, skills as a sorted
comma-separated list. The provider row carries a denormalized copy of its
rating summary and current trust record so that candidate retrieval needs
a single table.
"""

from typing import Optional

from sqlalchemy import Boolean, Column, Float, ForeignKey, Index, Integer, String, Text, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from matchtrust.domain.models import (
    Engagement,
    EngagementStatus,
    GeoPoint,
    IdentityDocuments,
    Provider,
    RatingSummary,
    Review,
    Sentiment,
    ServiceCategory,
    TrustFactors,
    TrustRecord,
    TrustStatus,
    VerificationStatus,
)
from matchtrust.logging import get_logger
from matchtrust.utils.timestamps import format_timestamp, parse_timestamp

logger = get_logger(__name__, component="database")

Base = declarative_base()


def encode_skills(skills) -> str:
    return ",".join(sorted(ServiceCategory(s).value for s in skills))


def decode_skills(value: Optional[str]) -> frozenset:
    if not value:
        return frozenset()
    return frozenset(ServiceCategory(part) for part in value.split(",") if part)


class ProviderModel(Base):
    """ORM model for providers table."""

    __tablename__ = "providers"

    provider_id = Column(String(64), primary_key=True, nullable=False)
    display_name = Column(String(255), nullable=False, default="")

    # Profile
    skills = Column(String(255), nullable=False, default="")
    experience_years = Column(Integer, nullable=False, default=0)
    expected_price = Column(Float, nullable=False, default=0.0)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)

    # Rating summary (running mean)
    rating_average = Column(Float, nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)

    # Current trust record summary
    trust_score = Column(Float, nullable=False, default=0.0)
    trust_status = Column(String(20), nullable=False, default=TrustStatus.NEEDS_REVIEW.value)
    trust_updated_at = Column(String(50), nullable=True)

    # Verification
    verification_status = Column(
        String(20), nullable=False, default=VerificationStatus.PENDING.value
    )
    identity_document_verified = Column(Boolean, nullable=False, default=False)
    tax_document_verified = Column(Boolean, nullable=False, default=False)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_providers_location", "latitude", "longitude"),
        Index("idx_providers_eligibility", "is_active", "verification_status"),
    )

    def to_domain(self, factors: Optional[TrustFactors] = None) -> Provider:
        return Provider(
            provider_id=self.provider_id,
            display_name=self.display_name or "",
            skills=decode_skills(self.skills),
            experience_years=self.experience_years,
            expected_price=self.expected_price,
            location=GeoPoint(latitude=self.latitude, longitude=self.longitude),
            rating=RatingSummary(average=self.rating_average, count=self.rating_count),
            trust=TrustRecord(
                score=self.trust_score,
                status=TrustStatus(self.trust_status),
                factors=factors,
                last_updated=parse_timestamp(self.trust_updated_at),
            ),
            verification_status=VerificationStatus(self.verification_status),
            documents=IdentityDocuments(
                identity_verified=self.identity_document_verified,
                tax_verified=self.tax_document_verified,
            ),
            is_active=self.is_active,
            created_at=parse_timestamp(self.created_at),
        )

    @classmethod
    def from_domain(cls, provider: Provider) -> "ProviderModel":
        return cls(
            provider_id=provider.provider_id,
            display_name=provider.display_name,
            skills=encode_skills(provider.skills),
            experience_years=provider.experience_years,
            expected_price=provider.expected_price,
            latitude=provider.location.latitude,
            longitude=provider.location.longitude,
            rating_average=provider.rating.average,
            rating_count=provider.rating.count,
            trust_score=provider.trust.score,
            trust_status=provider.trust.status.value,
            trust_updated_at=format_timestamp(provider.trust.last_updated),
            verification_status=provider.verification_status.value,
            identity_document_verified=provider.documents.identity_verified,
            tax_document_verified=provider.documents.tax_verified,
            is_active=provider.is_active,
            created_at=format_timestamp(provider.created_at),
        )


class ReviewModel(Base):
    """ORM model for reviews table. One row per engagement."""

    __tablename__ = "reviews"

    review_id = Column(String(64), primary_key=True, nullable=False)
    provider_id = Column(String(64), ForeignKey("providers.provider_id"), nullable=False)
    engagement_id = Column(String(64), nullable=False, unique=True)
    reviewer_id = Column(String(64), nullable=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False, default="")
    sentiment = Column(String(10), nullable=False, default=Sentiment.NEUTRAL.value)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_reviews_provider_sentiment", "provider_id", "sentiment"),)

    def to_domain(self) -> Review:
        return Review(
            review_id=self.review_id,
            provider_id=self.provider_id,
            engagement_id=self.engagement_id,
            reviewer_id=self.reviewer_id,
            rating=self.rating,
            comment=self.comment,
            sentiment=Sentiment(self.sentiment),
            created_at=parse_timestamp(self.created_at),
        )

    @classmethod
    def from_domain(cls, review: Review) -> "ReviewModel":
        return cls(
            review_id=review.review_id,
            provider_id=review.provider_id,
            engagement_id=review.engagement_id,
            reviewer_id=review.reviewer_id,
            rating=review.rating,
            comment=review.comment,
            sentiment=review.sentiment.value,
            created_at=format_timestamp(review.created_at),
        )


class EngagementModel(Base):
    """ORM model for engagements (bookings) table."""

    __tablename__ = "engagements"

    engagement_id = Column(String(64), primary_key=True, nullable=False)
    provider_id = Column(String(64), ForeignKey("providers.provider_id"), nullable=False)
    requester_id = Column(String(64), nullable=True)
    status = Column(String(20), nullable=False, default=EngagementStatus.PENDING.value)
    created_at = Column(String(50), nullable=False)
    responded_at = Column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_engagements_status", "status"),
        Index("idx_engagements_provider", "provider_id"),
    )

    def to_domain(self) -> Engagement:
        return Engagement(
            engagement_id=self.engagement_id,
            provider_id=self.provider_id,
            requester_id=self.requester_id,
            status=EngagementStatus(self.status),
            created_at=parse_timestamp(self.created_at),
            responded_at=parse_timestamp(self.responded_at),
        )

    @classmethod
    def from_domain(cls, engagement: Engagement) -> "EngagementModel":
        return cls(
            engagement_id=engagement.engagement_id,
            provider_id=engagement.provider_id,
            requester_id=engagement.requester_id,
            status=engagement.status.value,
            created_at=format_timestamp(engagement.created_at),
            responded_at=format_timestamp(engagement.responded_at),
        )


class TrustRecordModel(Base):
    """ORM model for trust_records table: latest record and factors per provider."""

    __tablename__ = "trust_records"

    provider_id = Column(String(64), ForeignKey("providers.provider_id"), primary_key=True)
    score = Column(Float, nullable=False)
    status = Column(String(20), nullable=False)
    document_verification = Column(Float, nullable=False)
    review_sentiment = Column(Float, nullable=False)
    rating_average = Column(Float, nullable=False)
    experience = Column(Float, nullable=False)
    response_rate = Column(Float, nullable=False)
    last_updated = Column(String(50), nullable=False)

    def factors(self) -> TrustFactors:
        return TrustFactors(
            document_verification=self.document_verification,
            review_sentiment=self.review_sentiment,
            rating_average=self.rating_average,
            experience=self.experience,
            response_rate=self.response_rate,
        )

    def to_domain(self) -> TrustRecord:
        return TrustRecord(
            score=self.score,
            status=TrustStatus(self.status),
            factors=self.factors(),
            last_updated=parse_timestamp(self.last_updated),
        )

    def apply(self, record: TrustRecord) -> None:
        """Overwrite this row with ``record``."""
        factors = record.factors or TrustFactors()
        self.score = record.score
        self.status = record.status.value
        self.document_verification = factors.document_verification
        self.review_sentiment = factors.review_sentiment
        self.rating_average = factors.rating_average
        self.experience = factors.experience
        self.response_rate = factors.response_rate
        self.last_updated = format_timestamp(record.last_updated)


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes that do not exist yet (idempotent)."""
    logger.info("Creating database schema if not exists", extra={"event": "database.schema.creating"})
    try:
        Base.metadata.create_all(engine, checkfirst=True)
        tables = inspect(engine).get_table_names()
        logger.info(
            f"Database schema ready. Tables: {', '.join(tables)}",
            extra={"event": "database.schema.ready"},
        )
    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
