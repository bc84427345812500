"""Tests for collaborator filters, bounded calls, and SQL-backed collaborators."""

import concurrent.futures
import threading
import time
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from matchtrust.collaborators import (
    BoundedCaller,
    CandidateFilters,
    CollaboratorTimeoutError,
    CollaboratorUnavailable,
)
from matchtrust.collaborators.sql import (
    SqlCandidateSource,
    SqlEngagementStateSource,
    SqlProviderDirectory,
    SqlResponsivenessSource,
    SqlReviewStore,
    SqlTrustRecordSink,
    SqlVerificationStateSource,
)
from matchtrust.domain.models import (
    Engagement,
    EngagementStatus,
    GeoPoint,
    PriceRange,
    Review,
    SearchPreference,
    Sentiment,
    ServiceCategory,
    TrustRecord,
    TrustStatus,
    VerificationStatus,
)
from matchtrust.logging import log_context
from matchtrust.logging.context import get_log_context
from matchtrust.persistence import (
    EngagementRepository,
    PersistenceError,
    ProviderRepository,
    ReviewRepository,
    close_database,
    get_session,
    init_database,
)

from tests.helpers import make_provider
from tests.helpers.in_memory import ORIGIN

T0 = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def database():
    """Fresh in-memory database per test."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture
def caller():
    bounded = BoundedCaller(timeout_seconds=1.0)
    yield bounded
    bounded.shutdown(wait=True, timeout=1.0)


def add_providers(*providers):
    with get_session() as session:
        repository = ProviderRepository(session)
        for provider in providers:
            repository.add(provider)


class TestCandidateFilters:
    """Tests for CandidateFilters."""

    def test_from_preference(self):
        preference = SearchPreference(
            latitude=1, longitude=1, skills=["cooking"], min_experience=2,
            price_range=PriceRange(max_price=9000),
        )

        filters = CandidateFilters.from_preference(preference)

        assert filters.skills == {ServiceCategory.COOKING}
        assert filters.min_experience == 2
        assert filters.price_range.max_price == 9000

    def test_empty_filters_accept_any_bookable_profile(self):
        assert CandidateFilters().accepts(make_provider())

    @pytest.mark.parametrize(
        "provider",
        [
            make_provider(is_active=False),
            make_provider(verification_status=VerificationStatus.PENDING),
            make_provider(experience_years=1),
            make_provider(expected_price=15000),
            make_provider(skills=("babysitting",)),
        ],
    )
    def test_rejections(self, provider):
        filters = CandidateFilters(
            skills=frozenset({ServiceCategory.COOKING, ServiceCategory.CLEANING}),
            min_experience=3,
            price_range=PriceRange(min_price=5000, max_price=10000),
        )

        assert not filters.accepts(provider)

    def test_one_shared_skill_is_enough(self):
        filters = CandidateFilters(skills=frozenset({ServiceCategory.COOKING, ServiceCategory.BABYSITTING}))

        assert filters.accepts(make_provider(skills=("cooking",)))


class TestBoundedCaller:
    """Tests for BoundedCaller."""

    def test_returns_result(self, caller):
        assert caller.call("adder", lambda a, b=0: a + b, 2, b=3) == 5

    def test_timeout(self, caller):
        release = threading.Event()
        try:
            with pytest.raises(CollaboratorTimeoutError) as exc_info:
                caller.call("slow", release.wait, 5, timeout=0.05)
        finally:
            release.set()

        assert exc_info.value.collaborator == "slow"
        assert exc_info.value.timeout_seconds == 0.05
        assert isinstance(exc_info.value, CollaboratorUnavailable)

    def test_collaborator_unavailable_passes_through(self, caller):
        original = CollaboratorUnavailable("down", collaborator="reviews")

        def fail():
            raise original

        with pytest.raises(CollaboratorUnavailable) as exc_info:
            caller.call("reviews", fail)

        assert exc_info.value is original

    def test_other_errors_are_wrapped(self, caller):
        def fail():
            raise KeyError("boom")

        with pytest.raises(CollaboratorUnavailable) as exc_info:
            caller.call("index", fail)

        assert exc_info.value.collaborator == "index"
        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_call_sees_callers_log_context(self, caller):
        with log_context(search_id="s-42"):
            seen = caller.call("context", lambda: get_log_context().get("search_id"))

        assert seen == "s-42"

    def test_parallel_calls_each_get_the_full_bound(self, caller):
        calls = 30

        with concurrent.futures.ThreadPoolExecutor(max_workers=calls) as pool:
            futures = [
                pool.submit(caller.call, "sleeper", time.sleep, 0.2, timeout=0.6)
                for _ in range(calls)
            ]
            errors = [future.exception(timeout=10) for future in futures]

        assert errors == [None] * calls

    def test_shutdown_waits_for_in_flight_calls(self, caller):
        release = threading.Event()
        with pytest.raises(CollaboratorTimeoutError):
            caller.call("slow", release.wait, 5, timeout=0.05)
        assert caller.in_flight == 1

        release.set()
        caller.shutdown(wait=True, timeout=2.0)

        assert caller.in_flight == 0

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError):
            BoundedCaller(timeout_seconds=0)


class TestSqlCandidateSource:
    """Tests for SqlCandidateSource."""

    @pytest.fixture
    def seeded(self, database):
        add_providers(
            make_provider("near", latitude=28.6140, longitude=77.2100),
            make_provider("mid", latitude=28.6339, longitude=77.2090),
            make_provider("far", latitude=28.6639, longitude=77.2090, skills=("babysitting",)),
            make_provider("outside", latitude=28.7639, longitude=77.2090),
            make_provider("pending", verification_status=VerificationStatus.PENDING),
        )

    def test_find_near_nearest_first_within_radius(self, seeded):
        origin = GeoPoint(latitude=ORIGIN[0], longitude=ORIGIN[1])

        providers = SqlCandidateSource().find_near(origin, 10.0, CandidateFilters(), limit=10)

        assert [p.provider_id for p in providers] == ["near", "mid", "far"]

    def test_find_near_applies_filters_and_limit(self, seeded):
        origin = GeoPoint(latitude=ORIGIN[0], longitude=ORIGIN[1])
        filters = CandidateFilters(skills=frozenset({ServiceCategory.COOKING}))

        providers = SqlCandidateSource().find_near(origin, 10.0, filters, limit=1)

        assert [p.provider_id for p in providers] == ["near"]

    def test_scan_ignores_distance(self, seeded):
        providers = SqlCandidateSource().scan(CandidateFilters())

        assert {p.provider_id for p in providers} == {"near", "mid", "far", "outside"}

    def test_persistence_error_becomes_unavailable(self, seeded):
        origin = GeoPoint(latitude=ORIGIN[0], longitude=ORIGIN[1])
        with patch.object(ProviderRepository, "find_eligible", side_effect=PersistenceError("locked")):
            with pytest.raises(CollaboratorUnavailable) as exc_info:
                SqlCandidateSource().find_near(origin, 10.0, CandidateFilters(), limit=5)

        assert exc_info.value.collaborator == "candidates.find_near"

    def test_uninitialized_database_is_unavailable(self):
        close_database()

        with pytest.raises(CollaboratorUnavailable):
            SqlCandidateSource().scan(CandidateFilters())


class TestSqlStateCollaborators:
    """Tests for the remaining SQL collaborators."""

    def test_engagement_state(self, database):
        add_providers(make_provider("p-1"), make_provider("p-2"))
        with get_session() as session:
            EngagementRepository(session).add(Engagement(
                engagement_id="e-1", provider_id="p-2", status=EngagementStatus.ACCEPTED, created_at=T0,
            ))

        assert SqlEngagementStateSource().open_engagement_provider_ids() == {"p-2"}

    def test_directory(self, database):
        add_providers(make_provider("p-2"), make_provider("p-1"))
        directory = SqlProviderDirectory()

        assert directory.list_provider_ids() == ["p-1", "p-2"]
        assert directory.get_provider("p-1").provider_id == "p-1"
        assert directory.get_provider("ghost") is None

    def test_verification_state(self, database):
        add_providers(make_provider("p-1", verification_status=VerificationStatus.REJECTED))

        state = SqlVerificationStateSource().get_verification_state("p-1")

        assert state.status == VerificationStatus.REJECTED
        assert SqlVerificationStateSource().get_verification_state("ghost") is None

    def test_review_store(self, database):
        add_providers(make_provider("p-1"))
        with get_session() as session:
            ReviewRepository(session).add(Review(
                review_id="r-1", provider_id="p-1", engagement_id="e-1", rating=5,
                sentiment=Sentiment.POSITIVE, created_at=T0,
            ))

        assert SqlReviewStore().sentiment_tally("p-1").positive == 1

    def test_responsiveness_uses_clock(self, database):
        add_providers(make_provider("p-1"))
        with get_session() as session:
            EngagementRepository(session).add(Engagement(engagement_id="e-1", provider_id="p-1", created_at=T0))
        source = SqlResponsivenessSource(window=timedelta(hours=24), clock=lambda: T0 + timedelta(hours=1))

        # Still inside the response window: nothing counts yet
        assert source.response_rate("p-1") is None

        source.clock = lambda: T0 + timedelta(hours=25)
        assert source.response_rate("p-1") == 0.0

    def test_trust_sink(self, database):
        add_providers(make_provider("p-1", trust_score=0))
        record = TrustRecord(score=64.0, status=TrustStatus.VERIFIED, last_updated=T0)

        SqlTrustRecordSink().save_trust_record("p-1", record)

        assert SqlProviderDirectory().get_provider("p-1").trust.score == 64.0

    def test_trust_sink_unknown_provider_is_unavailable(self, database):
        with pytest.raises(CollaboratorUnavailable):
            SqlTrustRecordSink().save_trust_record("ghost", TrustRecord(last_updated=T0))
