"""End-to-end flows across workflows, trust, and search on a real SQLite database.

Covers:
- A newly registered provider is invisible to search until verified
- Reviews raise the rating and trust that search ranks on
- An open booking hides a provider until the engagement closes
- Rejection removes a provider and forces Needs Review
- The batch refresh rewrites every stored trust record
"""

from datetime import datetime, timedelta, timezone

import pytest

from matchtrust.config.models import AppConfig
from matchtrust.domain.models import (
    Engagement,
    EngagementStatus,
    PriceRange,
    SearchPreference,
    ServiceCategory,
    SortKey,
    TrustRecord,
    TrustStatus,
    VerificationStatus,
)
from matchtrust.main import build_services
from matchtrust.persistence import (
    EngagementRepository,
    ProviderRepository,
    close_database,
    get_session,
    init_database,
)
from matchtrust.persistence.repositories import TrustRecordRepository

from tests.helpers import make_provider

ORIGIN = {"latitude": 28.6139, "longitude": 77.2090}


@pytest.fixture
def services(tmp_path):
    init_database(f"sqlite:///{tmp_path / 'flow.db'}")
    built = build_services(AppConfig())
    yield built
    built.recommendation.caller.shutdown()
    close_database()


def register(provider):
    with get_session() as session:
        ProviderRepository(session).add(provider)


def book(engagement_id, provider_id, status=EngagementStatus.PENDING):
    with get_session() as session:
        EngagementRepository(session).add(Engagement(
            engagement_id=engagement_id,
            provider_id=provider_id,
            status=status,
            created_at=datetime.now(timezone.utc) - timedelta(hours=2),
        ))


def move(engagement_id, status):
    with get_session() as session:
        EngagementRepository(session).update_status(engagement_id, status)


def search_ids(services, **overrides):
    preference = SearchPreference(**{**ORIGIN, **overrides})
    return [r.provider_id for r in services.recommendation.search(preference)]


def new_provider(provider_id, **overrides):
    fields = dict(
        verification_status=VerificationStatus.PENDING,
        documents_verified=False,
        rating=0.0,
        rating_count=0,
        trust_score=0.0,
    )
    fields.update(overrides)
    provider = make_provider(provider_id, **fields)
    return provider.model_copy(update={"trust": TrustRecord()})


class TestProviderLifecycle:
    """A provider from registration to ranked result."""

    def test_registration_verification_and_reviews(self, services):
        register(new_provider("sunita", skills=("cleaning", "cooking"), expected_price=8000))

        assert search_ids(services) == []

        outcome = services.verification.set_status("sunita", VerificationStatus.VERIFIED)
        assert outcome.trust_record is not None
        assert search_ids(services) == ["sunita"]

        book("e-1", "sunita")
        assert search_ids(services) == []

        move("e-1", EngagementStatus.ACCEPTED)
        assert search_ids(services) == []

        move("e-1", EngagementStatus.COMPLETED)
        review = services.reviews.create_review("sunita", "e-1", 5, "Excellent, very clean and punctual")

        assert review.provider.rating.average == 5.0
        assert review.trust_record.score > outcome.trust_record.score

        results = services.recommendation.search(SearchPreference(
            **ORIGIN,
            skills=[ServiceCategory.CLEANING, ServiceCategory.COOKING],
            price_range=PriceRange(min_price=5000, max_price=10000),
        ))
        assert [r.provider_id for r in results] == ["sunita"]
        assert results[0].breakdown.trust == pytest.approx(review.trust_record.score / 10)

    def test_rejection_removes_from_search(self, services):
        register(make_provider("p-1"))
        assert search_ids(services) == ["p-1"]

        outcome = services.verification.set_status("p-1", "rejected")

        assert outcome.trust_record.status == TrustStatus.NEEDS_REVIEW
        assert search_ids(services) == []

    def test_cancelled_booking_frees_provider(self, services):
        register(make_provider("p-1"))
        book("e-1", "p-1")

        move("e-1", EngagementStatus.CANCELLED)

        assert search_ids(services) == ["p-1"]


class TestRankingOnStoredData:
    """Ranking behaviour against stored providers."""

    def test_sort_orders(self, services):
        register(make_provider("cheap", latitude=28.6339, longitude=77.2090, expected_price=4000, rating=3.5))
        register(make_provider("close", latitude=28.6140, longitude=77.2100, expected_price=9000, rating=4.0))
        register(make_provider("star", latitude=28.6439, longitude=77.2090, expected_price=7000, rating=4.9))

        assert search_ids(services, sort_by=SortKey.DISTANCE) == ["close", "cheap", "star"]
        assert search_ids(services, sort_by=SortKey.PRICE) == ["cheap", "star", "close"]
        assert search_ids(services, sort_by=SortKey.RATING) == ["star", "close", "cheap"]

    def test_out_of_radius_provider_never_returned(self, services):
        register(make_provider("jaipur", latitude=26.9124, longitude=75.7873))

        assert search_ids(services, max_distance_km=50) == []
        assert services.recommendation.nearby(ORIGIN["latitude"], ORIGIN["longitude"], 300)[0].provider_id == "jaipur"


class TestBatchRefresh:
    """Batch refresh against stored providers."""

    def test_refresh_rewrites_all_records(self, services):
        register(make_provider("p-1", trust_score=0))
        register(new_provider("p-2"))

        result = services.refresh.run_once()

        assert result.recomputed_count == 2
        assert not result.had_errors
        with get_session() as session:
            records = TrustRecordRepository(session)
            assert records.get("p-1").status in (TrustStatus.TRUSTED, TrustStatus.VERIFIED)
            assert records.get("p-2").status == TrustStatus.NEEDS_REVIEW
