"""Data access layer (repositories) for persistence operations.

Repositories wrap one session, return domain models rather than ORM rows,
and translate SQLAlchemy errors into PersistenceError subclasses. They never
commit; the surrounding ``get_session()`` block owns the transaction.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from matchtrust.domain.models import (
    OPEN_ENGAGEMENT_STATUSES,
    Engagement,
    EngagementStatus,
    GeoPoint,
    Provider,
    Review,
    Sentiment,
    SentimentTally,
    ServiceCategory,
    TrustRecord,
    VerificationState,
    VerificationStatus,
)
from matchtrust.logging import get_logger
from matchtrust.utils.timestamps import format_timestamp, utc_now

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import EngagementModel, ProviderModel, ReviewModel, TrustRecordModel, encode_skills

logger = get_logger(__name__, component="database")

# (min_lat, max_lat, min_lon, max_lon)
BoundingBox = Tuple[float, float, float, float]

ACCEPTED_STATUSES = (EngagementStatus.ACCEPTED.value, EngagementStatus.COMPLETED.value)


class ProviderRepository:
    """Repository for provider profiles, verification state, and summaries."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, provider_id: str) -> Optional[Provider]:
        """Retrieve a provider with its stored trust factors, or None."""
        try:
            model = self.session.get(ProviderModel, provider_id)
            if model is None:
                return None
            trust_row = self.session.get(TrustRecordModel, provider_id)
            return model.to_domain(factors=trust_row.factors() if trust_row else None)
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving provider {provider_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve provider: {e}") from e

    def add(self, provider: Provider) -> Provider:
        """Register a new provider.

        Raises:
            DataIntegrityError: If the identifier is already taken
            PersistenceError: If database error occurs
        """
        try:
            model = ProviderModel.from_domain(provider)
            if model.created_at is None:
                model.created_at = format_timestamp(utc_now())
            self.session.add(model)
            self.session.flush()
            logger.info(
                f"Registered provider {provider.provider_id}",
                extra={"event": "provider.registered", "provider_id": provider.provider_id},
            )
            return model.to_domain()
        except IntegrityError as e:
            raise DataIntegrityError(
                f"Provider {provider.provider_id} already exists: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding provider {provider.provider_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add provider: {e}") from e

    def update_profile(
        self,
        provider_id: str,
        display_name: Optional[str] = None,
        skills: Optional[Set[ServiceCategory]] = None,
        experience_years: Optional[int] = None,
        expected_price: Optional[float] = None,
        location: Optional[GeoPoint] = None,
        is_active: Optional[bool] = None,
    ) -> Provider:
        """Update provider-owned profile fields; None leaves a field unchanged.

        Raises:
            RecordNotFoundError: If the provider does not exist
            ValueError: If a numeric field is negative
        """
        if experience_years is not None and experience_years < 0:
            raise ValueError(f"experience_years cannot be negative: {experience_years}")
        if expected_price is not None and expected_price < 0:
            raise ValueError(f"expected_price cannot be negative: {expected_price}")

        values: Dict[str, object] = {}
        if display_name is not None:
            values["display_name"] = display_name
        if skills is not None:
            values["skills"] = encode_skills(skills)
        if experience_years is not None:
            values["experience_years"] = experience_years
        if expected_price is not None:
            values["expected_price"] = expected_price
        if location is not None:
            values["latitude"] = location.latitude
            values["longitude"] = location.longitude
        if is_active is not None:
            values["is_active"] = is_active

        self._update(provider_id, values)
        return self.get(provider_id)

    def deactivate(self, provider_id: str) -> Provider:
        """Soft-deactivate a provider. Providers are never hard-deleted."""
        self._update(provider_id, {"is_active": False})
        logger.info(
            f"Deactivated provider {provider_id}",
            extra={"event": "provider.deactivated", "provider_id": provider_id},
        )
        return self.get(provider_id)

    def add_rating(self, provider_id: str, rating: int) -> None:
        """Fold one rating into the running mean in a single UPDATE.

        avg' = (avg * count + rating) / (count + 1)

        Raises:
            RecordNotFoundError: If the provider does not exist
            ValueError: If rating is outside [1, 5]
        """
        if not 1 <= rating <= 5:
            raise ValueError(f"rating must be between 1 and 5, got: {rating}")
        self._update(
            provider_id,
            {
                "rating_average": (
                    (ProviderModel.rating_average * ProviderModel.rating_count + rating)
                    / (ProviderModel.rating_count + 1)
                ),
                "rating_count": ProviderModel.rating_count + 1,
            },
        )

    def set_verification(
        self,
        provider_id: str,
        status: VerificationStatus,
        documents_verified: Optional[bool] = None,
        is_active: Optional[bool] = None,
    ) -> None:
        """Record an administrator verification decision."""
        values: Dict[str, object] = {"verification_status": status.value}
        if documents_verified is not None:
            values["identity_document_verified"] = documents_verified
            values["tax_document_verified"] = documents_verified
        if is_active is not None:
            values["is_active"] = is_active
        self._update(provider_id, values)

    def set_document_flags(
        self, provider_id: str, identity_verified: bool, tax_verified: bool
    ) -> None:
        """Record the outcome of document checks for the two identity documents."""
        self._update(
            provider_id,
            {
                "identity_document_verified": identity_verified,
                "tax_document_verified": tax_verified,
            },
        )

    def get_verification_state(self, provider_id: str) -> Optional[VerificationState]:
        try:
            row = self.session.execute(
                select(
                    ProviderModel.verification_status,
                    ProviderModel.identity_document_verified,
                    ProviderModel.tax_document_verified,
                ).where(ProviderModel.provider_id == provider_id)
            ).one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error reading verification of {provider_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to read verification state: {e}") from e
        if row is None:
            return None
        status, identity_verified, tax_verified = row
        return VerificationState(
            status=VerificationStatus(status),
            documents_verified=bool(identity_verified and tax_verified),
        )

    def list_ids(self) -> List[str]:
        try:
            stmt = select(ProviderModel.provider_id).order_by(ProviderModel.provider_id)
            return list(self.session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error listing providers: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list providers: {e}") from e

    def find_eligible(
        self,
        min_experience: int = 0,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        bounding_box: Optional[BoundingBox] = None,
    ) -> List[Provider]:
        """Active, verified providers passing the SQL-expressible hard filters.

        Skill intersection is left to the caller. Rows come back in storage
        order.
        """
        stmt = select(ProviderModel).where(
            ProviderModel.is_active.is_(True),
            ProviderModel.verification_status == VerificationStatus.VERIFIED.value,
            ProviderModel.experience_years >= min_experience,
        )
        if min_price is not None:
            stmt = stmt.where(ProviderModel.expected_price >= min_price)
        if max_price is not None:
            stmt = stmt.where(ProviderModel.expected_price <= max_price)
        if bounding_box is not None:
            min_lat, max_lat, min_lon, max_lon = bounding_box
            stmt = stmt.where(ProviderModel.latitude.between(min_lat, max_lat))
            if (min_lon, max_lon) != (-180.0, 180.0):
                stmt = stmt.where(ProviderModel.longitude.between(min_lon, max_lon))

        try:
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error querying candidate providers: {e}", exc_info=True)
            raise PersistenceError(f"Failed to query providers: {e}") from e

    def _update(self, provider_id: str, values: Dict[str, object]) -> None:
        if not values:
            if self.session.get(ProviderModel, provider_id) is None:
                raise RecordNotFoundError(f"Provider {provider_id} not found")
            return
        try:
            result = self.session.execute(
                update(ProviderModel)
                .where(ProviderModel.provider_id == provider_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error updating provider {provider_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update provider: {e}") from e
        if result.rowcount == 0:
            raise RecordNotFoundError(f"Provider {provider_id} not found")
        # Later reads in this session must see the new column values
        self.session.expire_all()


class ReviewRepository:
    """Repository for reviews."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_engagement(self, engagement_id: str) -> Optional[Review]:
        try:
            model = self.session.execute(
                select(ReviewModel).where(ReviewModel.engagement_id == engagement_id)
            ).scalar_one_or_none()
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving review for {engagement_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve review: {e}") from e

    def add(self, review: Review) -> Review:
        """Insert a review.

        Raises:
            DataIntegrityError: If the engagement already has a review
            PersistenceError: If database error occurs
        """
        try:
            model = ReviewModel.from_domain(review)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            raise DataIntegrityError(
                f"Engagement {review.engagement_id} already has a review: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding review {review.review_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add review: {e}") from e

    def list_for_provider(self, provider_id: str) -> List[Review]:
        """Reviews of a provider, newest first."""
        try:
            stmt = (
                select(ReviewModel)
                .where(ReviewModel.provider_id == provider_id)
                .order_by(ReviewModel.created_at.desc(), ReviewModel.review_id)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing reviews for {provider_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list reviews: {e}") from e

    def sentiment_tally(self, provider_id: str) -> SentimentTally:
        try:
            rows = self.session.execute(
                select(ReviewModel.sentiment, func.count())
                .where(ReviewModel.provider_id == provider_id)
                .group_by(ReviewModel.sentiment)
            ).all()
        except SQLAlchemyError as e:
            logger.error(f"Error tallying reviews for {provider_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to tally reviews: {e}") from e
        counts = {Sentiment(label): count for label, count in rows}
        return SentimentTally(
            positive=counts.get(Sentiment.POSITIVE, 0),
            neutral=counts.get(Sentiment.NEUTRAL, 0),
            negative=counts.get(Sentiment.NEGATIVE, 0),
        )


class EngagementRepository:
    """Repository for engagements (bookings)."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, engagement_id: str) -> Optional[Engagement]:
        try:
            model = self.session.get(EngagementModel, engagement_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving engagement {engagement_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve engagement: {e}") from e

    def add(self, engagement: Engagement) -> Engagement:
        try:
            model = EngagementModel.from_domain(engagement)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            raise DataIntegrityError(
                f"Engagement {engagement.engagement_id} could not be stored: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding engagement {engagement.engagement_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add engagement: {e}") from e

    def update_status(
        self, engagement_id: str, status: EngagementStatus, at: Optional[datetime] = None
    ) -> Engagement:
        """Move an engagement to ``status``.

        The first transition out of ``pending`` stamps ``responded_at``.

        Raises:
            RecordNotFoundError: If the engagement does not exist
        """
        try:
            model = self.session.get(EngagementModel, engagement_id)
            if model is None:
                raise RecordNotFoundError(f"Engagement {engagement_id} not found")
            if model.responded_at is None and status != EngagementStatus.PENDING:
                model.responded_at = format_timestamp(at or utc_now())
            model.status = status.value
            self.session.flush()
            return model.to_domain()
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error updating engagement {engagement_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update engagement: {e}") from e

    def open_provider_ids(self) -> Set[str]:
        """Providers with at least one pending or accepted engagement."""
        try:
            stmt = (
                select(EngagementModel.provider_id)
                .where(EngagementModel.status.in_([s.value for s in OPEN_ENGAGEMENT_STATUSES]))
                .distinct()
            )
            return set(self.session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error reading open engagements: {e}", exc_info=True)
            raise PersistenceError(f"Failed to read open engagements: {e}") from e

    def list_for_provider(self, provider_id: str) -> List[Engagement]:
        try:
            stmt = (
                select(EngagementModel)
                .where(EngagementModel.provider_id == provider_id)
                .order_by(EngagementModel.created_at)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing engagements for {provider_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list engagements: {e}") from e

    def response_rate(
        self, provider_id: str, window: timedelta, now: Optional[datetime] = None
    ) -> Optional[float]:
        """Fraction of assigned engagements accepted within ``window`` of creation.

        Pending engagements still inside their window are not counted yet.
        Returns None when no engagement counts.
        """
        now = now or utc_now()
        assigned = 0
        accepted_in_time = 0
        for engagement in self.list_for_provider(provider_id):
            if engagement.status == EngagementStatus.PENDING and now - engagement.created_at < window:
                continue
            assigned += 1
            if (
                engagement.status.value in ACCEPTED_STATUSES
                and engagement.responded_at is not None
                and engagement.responded_at - engagement.created_at <= window
            ):
                accepted_in_time += 1
        if assigned == 0:
            return None
        return accepted_in_time / assigned


class TrustRecordRepository:
    """Repository for trust records."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, provider_id: str) -> Optional[TrustRecord]:
        try:
            model = self.session.get(TrustRecordModel, provider_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving trust record of {provider_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve trust record: {e}") from e

    def save(self, provider_id: str, record: TrustRecord) -> None:
        """Store ``record`` and copy its summary onto the provider row.

        Raises:
            RecordNotFoundError: If the provider does not exist
        """
        try:
            provider = self.session.get(ProviderModel, provider_id)
            if provider is None:
                raise RecordNotFoundError(f"Provider {provider_id} not found")

            model = self.session.get(TrustRecordModel, provider_id)
            if model is None:
                model = TrustRecordModel(provider_id=provider_id)
                self.session.add(model)
            model.apply(record)

            provider.trust_score = record.score
            provider.trust_status = record.status.value
            provider.trust_updated_at = format_timestamp(record.last_updated)
            self.session.flush()
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error saving trust record of {provider_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save trust record: {e}") from e
