"""Review creation workflow."""

import uuid
from datetime import datetime
from typing import Callable, Optional

from matchtrust.domain.models import EngagementStatus, Review
from matchtrust.logging import get_logger, log_context
from matchtrust.persistence.database import get_session
from matchtrust.persistence.exceptions import DataIntegrityError
from matchtrust.persistence.repositories import (
    EngagementRepository,
    ProviderRepository,
    ReviewRepository,
)
from matchtrust.sentiment.classifier import SentimentClassifier
from matchtrust.trust.engine import TrustScoreEngine
from matchtrust.trust.exceptions import ProviderNotFound
from matchtrust.utils.timestamps import utc_now

from .exceptions import DuplicateReview, EngagementNotFound, ReviewNotAllowed
from .models import ReviewOutcome
from .trust_refresh import recompute_after

logger = get_logger(__name__, component="workflows")


class ReviewService:
    """Records reviews of completed engagements.

    The review and the provider's running-mean rating are written in one
    transaction. Trust is recomputed after that transaction commits, and a
    failed recompute never rolls the review back.
    """

    def __init__(
        self,
        classifier: SentimentClassifier,
        trust_engine: TrustScoreEngine,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.classifier = classifier
        self.trust_engine = trust_engine
        self.clock = clock

    def create_review(
        self,
        provider_id: str,
        engagement_id: str,
        rating: int,
        comment: Optional[str] = None,
        reviewer_id: Optional[str] = None,
    ) -> ReviewOutcome:
        """Record a review and refresh the provider's trust score.

        Args:
            provider_id: Reviewed provider
            engagement_id: Completed engagement the review attests
            rating: Integer rating in [1, 5]
            comment: Optional free-text comment
            reviewer_id: Requester leaving the review

        Returns:
            ReviewOutcome with the stored review and the re-read provider

        Raises:
            ValueError: If rating is outside [1, 5]
            ProviderNotFound: If the provider is unknown
            EngagementNotFound: If the engagement is unknown
            ReviewNotAllowed: If the engagement belongs to another provider,
                was booked by someone other than reviewer_id, or is not completed
            DuplicateReview: If the engagement already has a review
        """
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValueError(f"rating must be an integer between 1 and 5, got: {rating!r}")

        with log_context(provider_id=provider_id, engagement_id=engagement_id):
            analysis = self.classifier.analyze(comment)
            review = Review(
                review_id=uuid.uuid4().hex,
                provider_id=provider_id,
                engagement_id=engagement_id,
                reviewer_id=reviewer_id,
                rating=rating,
                comment=comment or "",
                sentiment=analysis.sentiment,
                created_at=self.clock(),
            )

            try:
                with get_session() as session:
                    self._check_reviewable(session, provider_id, engagement_id, reviewer_id)
                    stored = ReviewRepository(session).add(review)
                    ProviderRepository(session).add_rating(provider_id, rating)
            except DataIntegrityError as e:
                # Lost a race with a concurrent review of the same engagement
                raise DuplicateReview(engagement_id) from e

            logger.info(
                f"Review recorded for {provider_id}",
                extra={
                    "event": "review.created",
                    "rating": rating,
                    "sentiment": stored.sentiment.value,
                    "sentiment_score": analysis.score,
                },
            )

            record, error = recompute_after(self.trust_engine, provider_id, trigger="review")

            with get_session() as session:
                provider = ProviderRepository(session).get(provider_id)

            return ReviewOutcome(
                review=stored, provider=provider, trust_record=record, trust_error=error
            )

    @staticmethod
    def _check_reviewable(
        session, provider_id: str, engagement_id: str, reviewer_id: Optional[str]
    ) -> None:
        if ProviderRepository(session).get(provider_id) is None:
            raise ProviderNotFound(provider_id)

        engagement = EngagementRepository(session).get(engagement_id)
        if engagement is None:
            raise EngagementNotFound(engagement_id)
        if engagement.provider_id != provider_id:
            raise ReviewNotAllowed(
                f"Engagement {engagement_id} does not belong to provider {provider_id}"
            )
        if reviewer_id is not None and engagement.requester_id != reviewer_id:
            raise ReviewNotAllowed(
                f"Reviewer {reviewer_id} did not book engagement {engagement_id}"
            )
        if engagement.status != EngagementStatus.COMPLETED:
            raise ReviewNotAllowed(
                f"Engagement {engagement_id} is {engagement.status.value}; "
                "only completed engagements can be reviewed"
            )

        if ReviewRepository(session).get_by_engagement(engagement_id) is not None:
            raise DuplicateReview(engagement_id)
