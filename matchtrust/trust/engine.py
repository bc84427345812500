"""Trust score computation.

The trust score is a fixed weighted sum of five normalized factors, scaled
to [0, 100]:

- document_verification (0.30): 1.0 when both identity documents are verified
- review_sentiment (0.25): (positive - negative) / max(1, total), mapped to [0, 1]
- rating_average (0.20): rating average / 5
- experience (0.15): years / 10, saturating at 10 years
- response_rate (0.10): supplied fraction, 1.0 when no data exists

Administrative verification gates the label: a provider whose status is not
``verified`` is always ``Needs Review``, although the numeric score is still
computed and stored.
"""

import time
from datetime import datetime
from typing import Callable, Optional

from matchtrust.collaborators.base import (
    ProviderDirectory,
    ResponsivenessSource,
    ReviewStore,
    TrustRecordSink,
    VerificationStateSource,
)
from matchtrust.collaborators.exceptions import CollaboratorUnavailable
from matchtrust.domain.models import (
    SentimentTally,
    TrustFactors,
    TrustRecord,
    TrustStatus,
    VerificationState,
    VerificationStatus,
)
from matchtrust.logging import get_logger, log_context
from matchtrust.utils.timestamps import utc_now

from .exceptions import ProviderNotFound, TrustPersistenceError
from .locks import KeyedLocks

logger = get_logger(__name__, component="trust")

DOCUMENT_WEIGHT = 0.30
SENTIMENT_WEIGHT = 0.25
RATING_WEIGHT = 0.20
EXPERIENCE_WEIGHT = 0.15
RESPONSE_WEIGHT = 0.10

TRUSTED_THRESHOLD = 80.0
VERIFIED_THRESHOLD = 50.0

EXPERIENCE_SATURATION_YEARS = 10
NEUTRAL_RESPONSE_RATE = 1.0


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(high, max(low, value))


def compute_factors(
    verification: VerificationState,
    rating_average: float,
    experience_years: int,
    tally: SentimentTally,
    response_rate: Optional[float],
) -> TrustFactors:
    """Normalize raw provider signals into trust factors."""
    if response_rate is None:
        response_rate = NEUTRAL_RESPONSE_RATE
    return TrustFactors(
        document_verification=1.0 if verification.documents_verified else 0.0,
        review_sentiment=_clamp((tally.balance + 1.0) / 2.0),
        rating_average=_clamp(rating_average / 5.0),
        experience=_clamp(experience_years / EXPERIENCE_SATURATION_YEARS),
        response_rate=_clamp(response_rate),
    )


def aggregate_score(factors: TrustFactors) -> float:
    """Weighted sum of ``factors`` scaled to [0, 100], rounded to two decimals."""
    weighted = (
        DOCUMENT_WEIGHT * factors.document_verification
        + SENTIMENT_WEIGHT * factors.review_sentiment
        + RATING_WEIGHT * factors.rating_average
        + EXPERIENCE_WEIGHT * factors.experience
        + RESPONSE_WEIGHT * factors.response_rate
    )
    return round(_clamp(100.0 * weighted, 0.0, 100.0), 2)


def status_for(score: float, verification_status: VerificationStatus) -> TrustStatus:
    if verification_status != VerificationStatus.VERIFIED:
        return TrustStatus.NEEDS_REVIEW
    if score >= TRUSTED_THRESHOLD:
        return TrustStatus.TRUSTED
    if score >= VERIFIED_THRESHOLD:
        return TrustStatus.VERIFIED
    return TrustStatus.NEEDS_REVIEW


class TrustScoreEngine:
    """Recomputes and stores provider trust records.

    Recomputes for the same provider are serialized; different providers
    are recomputed in parallel when called from several threads.
    """

    def __init__(
        self,
        directory: ProviderDirectory,
        verification: VerificationStateSource,
        reviews: ReviewStore,
        responsiveness: ResponsivenessSource,
        sink: TrustRecordSink,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize TrustScoreEngine.

        Args:
            directory: Provider profile lookup (experience, rating)
            verification: Verification status and document flags
            reviews: Sentiment tally of a provider's reviews
            responsiveness: Response-rate metric
            sink: Destination for computed records
            clock: Source of the last-updated timestamp
        """
        self.directory = directory
        self.verification = verification
        self.reviews = reviews
        self.responsiveness = responsiveness
        self.sink = sink
        self.clock = clock
        self._locks = KeyedLocks()

    def recompute(self, provider_id: str) -> TrustRecord:
        """Recompute, persist, and return the trust record of one provider.

        A provider without reviews or responsiveness data still gets a
        record; missing signals fall back to their neutral values.

        Args:
            provider_id: Provider identifier

        Returns:
            The new TrustRecord

        Raises:
            ProviderNotFound: If the identifier is unknown
            CollaboratorUnavailable: If an input collaborator fails; nothing
                is written and the previous record stays in place
            TrustPersistenceError: If the record was computed but not stored
        """
        with log_context(provider_id=provider_id), self._locks.hold(provider_id):
            start = time.monotonic()

            provider = self.directory.get_provider(provider_id)
            if provider is None:
                raise ProviderNotFound(provider_id)

            verification = self.verification.get_verification_state(provider_id)
            if verification is None:
                raise ProviderNotFound(provider_id)

            tally = self.reviews.sentiment_tally(provider_id)
            response_rate = self.responsiveness.response_rate(provider_id)

            factors = compute_factors(
                verification,
                rating_average=provider.rating.average,
                experience_years=provider.experience_years,
                tally=tally,
                response_rate=response_rate,
            )
            score = aggregate_score(factors)
            record = TrustRecord(
                score=score,
                status=status_for(score, verification.status),
                factors=factors,
                last_updated=self.clock(),
            )

            try:
                self.sink.save_trust_record(provider_id, record)
            except CollaboratorUnavailable as e:
                logger.error(
                    f"Trust record computed but not persisted: {e}",
                    extra={
                        "event": "trust.persist_failed",
                        "score": record.score,
                        "status": record.status.value,
                        "error": str(e),
                    },
                )
                raise TrustPersistenceError(provider_id, record, str(e)) from e

            logger.info(
                f"Trust recomputed: {record.score} ({record.status.value})",
                extra={
                    "event": "trust.recomputed",
                    "score": record.score,
                    "status": record.status.value,
                    "verification_status": verification.status.value,
                    "reviews": tally.total,
                    "response_rate_known": response_rate is not None,
                    "duration_ms": round((time.monotonic() - start) * 1000, 1),
                },
            )
            return record
