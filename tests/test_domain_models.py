"""Unit tests for domain models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from matchtrust.domain.models import (
    Engagement,
    EngagementStatus,
    GeoPoint,
    PriceRange,
    RatingSummary,
    Review,
    SearchPreference,
    SentimentTally,
    ServiceCategory,
    SortKey,
    TrustRecord,
    TrustStatus,
)

from tests.helpers import make_provider


class TestRatingSummary:
    """Tests for the running-mean rating."""

    def test_first_rating(self):
        summary = RatingSummary().add_rating(4)

        assert summary.count == 1
        assert summary.average == 4.0

    def test_running_mean(self):
        summary = RatingSummary(average=4.0, count=3).add_rating(2)

        assert summary.count == 4
        assert summary.average == pytest.approx(3.5)

    def test_returns_new_instance(self):
        original = RatingSummary(average=5.0, count=1)
        original.add_rating(1)

        assert original.count == 1

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rejects_out_of_range(self, rating):
        with pytest.raises(ValueError):
            RatingSummary().add_rating(rating)


class TestSentimentTally:
    """Tests for SentimentTally."""

    def test_empty_balance_is_zero(self):
        assert SentimentTally().balance == 0.0

    def test_balance(self):
        tally = SentimentTally(positive=3, neutral=1, negative=0)

        assert tally.total == 4
        assert tally.balance == pytest.approx(0.75)


class TestPriceRange:
    """Tests for PriceRange."""

    def test_requires_a_bound(self):
        with pytest.raises(ValidationError):
            PriceRange()

    def test_rejects_inverted_bounds(self):
        with pytest.raises(ValidationError, match="cannot exceed"):
            PriceRange(min_price=9000, max_price=5000)

    def test_open_ended_ranges(self):
        assert PriceRange(min_price=5000).contains(1_000_000)
        assert PriceRange(max_price=5000).contains(0)

    def test_distance_outside(self):
        price_range = PriceRange(min_price=5000, max_price=10000)

        assert price_range.distance_outside(7000) == 0.0
        assert price_range.distance_outside(4000) == 1000.0
        assert price_range.distance_outside(12500) == 2500.0


class TestSearchPreference:
    """Tests for SearchPreference."""

    def test_defaults(self):
        preference = SearchPreference(latitude=28.6, longitude=77.2)

        assert preference.max_distance_km == 10.0
        assert preference.skills == frozenset()
        assert preference.min_experience == 0
        assert preference.price_range is None
        assert preference.min_rating == 0.0
        assert preference.sort_by == SortKey.RECOMMENDATION

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            SearchPreference(latitude=28.6, longitude=77.2, radius=5)

    def test_coordinates_must_be_paired(self):
        with pytest.raises(ValidationError, match="together"):
            SearchPreference(latitude=28.6)

    @pytest.mark.parametrize("lat,lng", [(None, None), (0.0, 0.0)])
    def test_no_location(self, lat, lng):
        assert not SearchPreference(latitude=lat, longitude=lng).has_location

    def test_out_of_range_coordinates_are_representable_but_invalid(self):
        preference = SearchPreference(latitude=95.0, longitude=77.2)

        assert preference.has_location
        assert not preference.has_valid_coordinates

    def test_skills_from_strings(self):
        preference = SearchPreference(latitude=1, longitude=1, skills=["cooking", "cleaning"])

        assert preference.skills == {ServiceCategory.COOKING, ServiceCategory.CLEANING}

    @pytest.mark.parametrize("field,value", [("max_distance_km", 0), ("min_rating", 5.5), ("min_experience", -1)])
    def test_rejects_out_of_range_values(self, field, value):
        with pytest.raises(ValidationError):
            SearchPreference(latitude=1, longitude=1, **{field: value})


class TestProvider:
    """Tests for Provider and related records."""

    def test_unscored_provider_defaults(self):
        provider = make_provider(trust_score=0)
        fresh = provider.model_copy(update={"trust": TrustRecord()})

        assert fresh.trust.score == 0.0
        assert fresh.trust.status == TrustStatus.NEEDS_REVIEW
        assert fresh.trust.factors is None

    def test_geo_point_bounds(self):
        with pytest.raises(ValidationError):
            GeoPoint(latitude=91, longitude=0)

    def test_trust_record_timestamp_normalized_to_utc(self):
        record = TrustRecord(score=10, last_updated=datetime(2026, 10, 16, 9, 0))

        assert record.last_updated.tzinfo == timezone.utc

    def test_trust_score_bounds(self):
        with pytest.raises(ValidationError):
            TrustRecord(score=100.5)


class TestReviewAndEngagement:
    """Tests for Review and Engagement."""

    def test_review_comment_stripped(self):
        review = Review(
            review_id="r-1",
            provider_id="p-1",
            engagement_id="e-1",
            rating=5,
            comment="  Great work \n",
            created_at=datetime(2026, 10, 16, tzinfo=timezone.utc),
        )

        assert review.comment == "Great work"

    def test_review_rating_bounds(self):
        with pytest.raises(ValidationError):
            Review(
                review_id="r-1",
                provider_id="p-1",
                engagement_id="e-1",
                rating=6,
                created_at=datetime(2026, 10, 16, tzinfo=timezone.utc),
            )

    @pytest.mark.parametrize(
        "status,is_open",
        [
            (EngagementStatus.PENDING, True),
            (EngagementStatus.ACCEPTED, True),
            (EngagementStatus.COMPLETED, False),
            (EngagementStatus.REJECTED, False),
            (EngagementStatus.CANCELLED, False),
        ],
    )
    def test_open_statuses(self, status, is_open):
        engagement = Engagement(
            engagement_id="e-1",
            provider_id="p-1",
            status=status,
            created_at=datetime(2026, 10, 16, tzinfo=timezone.utc) - timedelta(hours=1),
        )

        assert engagement.is_open is is_open
