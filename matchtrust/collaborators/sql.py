"""Collaborators backed by the SQL persistence layer.

Each call opens its own session through ``get_session()``, so instances are
safe to share across threads. Persistence failures surface as
CollaboratorUnavailable.
"""

from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Callable, Iterator, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError

from matchtrust.domain.models import (
    GeoPoint,
    Provider,
    SentimentTally,
    TrustRecord,
    VerificationState,
)
from matchtrust.logging import get_logger
from matchtrust.persistence.database import get_session
from matchtrust.persistence.exceptions import PersistenceError
from matchtrust.persistence.repositories import (
    EngagementRepository,
    ProviderRepository,
    ReviewRepository,
    TrustRecordRepository,
)
from matchtrust.utils.geo import bounding_box, haversine_km
from matchtrust.utils.timestamps import utc_now

from .base import (
    CandidateFilters,
    CandidateSource,
    EngagementStateSource,
    ProviderDirectory,
    ResponsivenessSource,
    ReviewStore,
    TrustRecordSink,
    VerificationStateSource,
)
from .exceptions import CollaboratorUnavailable

logger = get_logger(__name__, component="collaborators")


@contextmanager
def _unavailable_on_error(name: str) -> Iterator[None]:
    try:
        yield
    except (PersistenceError, SQLAlchemyError) as e:
        logger.error(
            f"{name} failed: {e}",
            extra={"event": "collaborator.error", "collaborator": name, "error_type": type(e).__name__},
        )
        raise CollaboratorUnavailable(f"{name} failed: {e}", collaborator=name) from e


def _price_bounds(filters: CandidateFilters):
    if filters.price_range is None:
        return None, None
    return filters.price_range.min_price, filters.price_range.max_price


class SqlCandidateSource(CandidateSource):
    """Candidate retrieval over the providers table.

    The proximity query narrows rows with a latitude/longitude bounding box
    on indexed columns, then applies the exact haversine distance.
    """

    def find_near(
        self,
        origin: GeoPoint,
        max_distance_km: float,
        filters: CandidateFilters,
        limit: int,
    ) -> List[Provider]:
        min_price, max_price = _price_bounds(filters)
        box = bounding_box(origin.latitude, origin.longitude, max_distance_km)
        with _unavailable_on_error("candidates.find_near"), get_session() as session:
            rows = ProviderRepository(session).find_eligible(
                min_experience=filters.min_experience,
                min_price=min_price,
                max_price=max_price,
                bounding_box=box,
            )

        located = []
        for provider in rows:
            if not filters.accepts(provider):
                continue
            distance = haversine_km(
                origin.latitude,
                origin.longitude,
                provider.location.latitude,
                provider.location.longitude,
            )
            if distance <= max_distance_km:
                located.append((distance, provider.provider_id, provider))
        located.sort(key=lambda item: (item[0], item[1]))
        return [provider for _, _, provider in located[:limit]]

    def scan(self, filters: CandidateFilters) -> List[Provider]:
        min_price, max_price = _price_bounds(filters)
        with _unavailable_on_error("candidates.scan"), get_session() as session:
            rows = ProviderRepository(session).find_eligible(
                min_experience=filters.min_experience,
                min_price=min_price,
                max_price=max_price,
            )
        return [provider for provider in rows if filters.accepts(provider)]


class SqlEngagementStateSource(EngagementStateSource):
    def open_engagement_provider_ids(self) -> Set[str]:
        with _unavailable_on_error("engagements.open"), get_session() as session:
            return EngagementRepository(session).open_provider_ids()


class SqlProviderDirectory(ProviderDirectory):
    def get_provider(self, provider_id: str) -> Optional[Provider]:
        with _unavailable_on_error("providers.get"), get_session() as session:
            return ProviderRepository(session).get(provider_id)

    def list_provider_ids(self) -> List[str]:
        with _unavailable_on_error("providers.list"), get_session() as session:
            return ProviderRepository(session).list_ids()


class SqlVerificationStateSource(VerificationStateSource):
    def get_verification_state(self, provider_id: str) -> Optional[VerificationState]:
        with _unavailable_on_error("verification.get"), get_session() as session:
            return ProviderRepository(session).get_verification_state(provider_id)


class SqlReviewStore(ReviewStore):
    def sentiment_tally(self, provider_id: str) -> SentimentTally:
        with _unavailable_on_error("reviews.tally"), get_session() as session:
            return ReviewRepository(session).sentiment_tally(provider_id)


class SqlResponsivenessSource(ResponsivenessSource):
    """Share of engagements accepted within ``window`` of being requested."""

    def __init__(self, window: timedelta, clock: Callable[[], datetime] = utc_now):
        self.window = window
        self.clock = clock

    def response_rate(self, provider_id: str) -> Optional[float]:
        with _unavailable_on_error("engagements.response_rate"), get_session() as session:
            return EngagementRepository(session).response_rate(
                provider_id, self.window, now=self.clock()
            )


class SqlTrustRecordSink(TrustRecordSink):
    """Writes the trust record and the provider's trust summary in one transaction."""

    def save_trust_record(self, provider_id: str, record: TrustRecord) -> None:
        with _unavailable_on_error("trust_records.save"), get_session() as session:
            TrustRecordRepository(session).save(provider_id, record)
