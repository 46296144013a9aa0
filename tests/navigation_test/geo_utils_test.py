import numpy as np
import pytest

from navigation.tracker.geo_utils import (
    calculate_bearing,
    haversine_distance,
    haversine_many,
    path_length,
)


def test_distance_to_self_is_zero():
    assert haversine_distance(41.9028, 12.4964, 41.9028, 12.4964) == 0.0


def test_distance_is_symmetric():
    a = (41.890210, 12.492231)
    b = (41.898614, 12.476869)
    assert haversine_distance(*a, *b) == pytest.approx(haversine_distance(*b, *a), abs=1e-9)


def test_one_degree_of_latitude():
    # R * pi / 180
    assert haversine_distance(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_194.93, abs=0.01)


def test_vectorised_matches_scalar():
    lats = np.array([41.89, 41.90, 45.0])
    lons = np.array([12.49, 12.47, 7.0])
    expected = [haversine_distance(41.8955, 12.4823, la, lo) for la, lo in zip(lats, lons)]
    assert haversine_many(41.8955, 12.4823, lats, lons).tolist() == pytest.approx(expected, rel=1e-12)


def test_path_length_of_single_point_is_zero():
    assert path_length([(45.0, 7.0)]) == 0.0
    assert path_length([]) == 0.0


def test_path_length_sums_legs():
    pts = [(45.0, 7.0), (45.01, 7.0), (45.01, 7.01)]
    expected = haversine_distance(45.0, 7.0, 45.01, 7.0) + haversine_distance(45.01, 7.0, 45.01, 7.01)
    assert path_length(pts) == pytest.approx(expected)


def test_bearing_cardinal_directions():
    assert calculate_bearing(45.0, 7.0, 45.1, 7.0) == pytest.approx(0.0, abs=1e-6)
    assert calculate_bearing(0.0, 0.0, 0.0, 1.0) == pytest.approx(90.0, abs=1e-6)
    assert calculate_bearing(45.1, 7.0, 45.0, 7.0) == pytest.approx(180.0, abs=1e-6)
