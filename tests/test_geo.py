"""Unit tests for great-circle distance helpers."""

import math

import pytest

from matchtrust.utils.geo import bounding_box, haversine_km, is_valid_coordinate


class TestHaversine:
    """Tests for haversine_km."""

    def test_same_point_is_zero(self):
        assert haversine_km(28.6139, 77.2090, 28.6139, 77.2090) == 0.0

    def test_short_city_distance(self):
        distance = haversine_km(28.6139, 77.2090, 28.6140, 77.2100)

        assert distance == pytest.approx(0.0983, abs=0.001)

    def test_delhi_to_mumbai(self):
        distance = haversine_km(28.6139, 77.2090, 19.0760, 72.8777)

        assert distance == pytest.approx(1153, rel=0.01)

    def test_symmetric(self):
        forward = haversine_km(12.9716, 77.5946, 13.0827, 80.2707)
        backward = haversine_km(13.0827, 80.2707, 12.9716, 77.5946)

        assert forward == pytest.approx(backward)

    def test_antipodal_points_do_not_raise(self):
        distance = haversine_km(0.0, 0.0, 0.0, 180.0)

        assert distance == pytest.approx(math.pi * 6371.0, rel=1e-6)


class TestBoundingBox:
    """Tests for bounding_box."""

    def test_box_contains_points_on_the_radius(self):
        min_lat, max_lat, min_lon, max_lon = bounding_box(28.6139, 77.2090, 10.0)

        assert min_lat < 28.6139 < max_lat
        assert min_lon < 77.2090 < max_lon
        # A point 10 km due north lies on the box's northern edge
        assert haversine_km(28.6139, 77.2090, max_lat, 77.2090) == pytest.approx(10.0, rel=1e-6)

    def test_longitude_span_widens_with_latitude(self):
        _, _, eq_min, eq_max = bounding_box(0.0, 10.0, 50.0)
        _, _, hi_min, hi_max = bounding_box(60.0, 10.0, 50.0)

        assert (hi_max - hi_min) > (eq_max - eq_min)

    def test_near_pole_leaves_longitude_unbounded(self):
        _, max_lat, min_lon, max_lon = bounding_box(89.99, 0.0, 50.0)

        assert max_lat == 90.0
        assert (min_lon, max_lon) == (-180.0, 180.0)

    def test_antimeridian_leaves_longitude_unbounded(self):
        _, _, min_lon, max_lon = bounding_box(0.0, 179.99, 50.0)

        assert (min_lon, max_lon) == (-180.0, 180.0)


class TestIsValidCoordinate:
    """Tests for is_valid_coordinate."""

    @pytest.mark.parametrize("lat,lon", [(0.0, 0.0), (90.0, 180.0), (-90.0, -180.0), (28.6, 77.2)])
    def test_valid(self, lat, lon):
        assert is_valid_coordinate(lat, lon)

    @pytest.mark.parametrize(
        "lat,lon",
        [(90.1, 0.0), (0.0, -180.5), (float("nan"), 0.0), (0.0, float("inf"))],
    )
    def test_invalid(self, lat, lon):
        assert not is_valid_coordinate(lat, lon)
