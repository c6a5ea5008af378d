"""
Tests for geospatial helpers
"""
import pytest

from gironaneta.core.constants import GIRONA_CENTER
from gironaneta.core.geo_utils import (
    distance_to_center,
    haversine_distance,
    round_coordinate,
)


class TestHaversine:
    """Test suite for great-circle distances."""

    def test_same_point_is_zero(self):
        """Test distance from a point to itself."""
        assert haversine_distance(41.9794, 2.8214, 41.9794, 2.8214) == 0

    def test_one_degree_latitude(self):
        """Test one degree of latitude is about 111 km."""
        distance = haversine_distance(41.0, 2.8, 42.0, 2.8)
        assert distance == pytest.approx(111195, rel=0.001)

    def test_symmetric(self):
        """Test distance does not depend on direction."""
        a = haversine_distance(41.98, 2.82, 41.39, 2.17)
        b = haversine_distance(41.39, 2.17, 41.98, 2.82)
        assert a == pytest.approx(b)

    def test_girona_to_barcelona(self):
        """Test a known city-to-city distance."""
        distance = haversine_distance(GIRONA_CENTER[0], GIRONA_CENTER[1], 41.3874, 2.1686)
        assert 84000 < distance < 88000


class TestDistanceToCenter:

    def test_center(self):
        assert distance_to_center(*GIRONA_CENTER) == 0

    def test_nearby_point(self):
        """Test a point a few blocks from the center."""
        assert 70 < distance_to_center(41.98, 2.822) < 100


class TestCoordinates:

    def test_round_five_decimals(self):
        """Test cache key rounding to ~1 m."""
        assert round_coordinate(41.123456, 5) == pytest.approx(41.12346)
        assert round_coordinate(2.821449, 5) == pytest.approx(2.82145)

    def test_round_nearby_points_share_key(self):
        """Test points closer than the rounding step collapse to one key."""
        assert round_coordinate(41.9794011, 5) == round_coordinate(41.9794049, 5)
