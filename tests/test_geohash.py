import math
import random

import pytest

from src import config
from src.errors import InvalidCoordinate
from src.geo.geohash import bounds_for_circle, encode, in_bounds
from src.geo.proximity import EARTH_RADIUS_M, haversine_m

POINTS = [
    (40.0, -105.0),
    (0.0, 0.0),
    (51.5074, -0.1278),
    (-33.8688, 151.2093),
    (64.1466, -21.9426),
    (89.9, 179.9),
    (-89.9, -179.9),
    (90.0, 180.0),
    (-90.0, -180.0),
    (0.5, 179.999),
]
RADII_M = [0.01, 1, 100, 1609.34, 50000, 500000, 5000000, 20000000]


def test_encode_is_deterministic_and_fixed_precision():
    first = encode(40.0, -105.0)
    assert first == encode(40.0, -105.0)
    assert len(first) == config.GEOHASH_PRECISION


def test_encode_known_value():
    # Well-known geohash for the Boulder, CO area
    assert encode(40.0, -105.0).startswith("9xj")


def test_nearby_points_share_a_prefix():
    assert encode(40.0, -105.0)[:5] == encode(40.0001, -105.0001)[:5]


@pytest.mark.parametrize("lat,lng", [(90.1, 0), (-91, 0), (0, 180.5), (0, -181), ("north", 0)])
def test_invalid_coordinates_rejected(lat, lng):
    with pytest.raises(InvalidCoordinate):
        encode(lat, lng)
    with pytest.raises(InvalidCoordinate):
        bounds_for_circle((lat, lng), 1000)


@pytest.mark.parametrize("lat,lng", POINTS)
@pytest.mark.parametrize("radius_m", RADII_M)
def test_bounds_always_contain_the_center_hash(lat, lng, radius_m):
    bounds = bounds_for_circle((lat, lng), radius_m)
    assert bounds
    assert in_bounds(encode(lat, lng), bounds)


def test_bounds_are_half_open_and_distinct():
    bounds = bounds_for_circle((40.0, -105.0), 8000)
    assert 1 <= len(bounds) <= 9
    assert len(set(bounds)) == len(bounds)
    for start, end in bounds:
        assert start < end


def test_bounds_cover_points_inside_the_circle():
    # ~0.53 miles east of the center
    bounds = bounds_for_circle((40.0, -105.01), 5 * config.METERS_PER_MILE)
    assert in_bounds(encode(40.0, -105.0), bounds)


def test_larger_radius_uses_coarser_ranges():
    small = bounds_for_circle((40.0, -105.0), 500)
    large = bounds_for_circle((40.0, -105.0), 200000)
    assert len(large[0][0]) < len(small[0][0])


def _destination(lat, lng, distance_m, bearing):
    # Point reached from (lat, lng) along a great circle
    delta = distance_m / EARTH_RADIUS_M
    phi1 = math.radians(lat)
    theta = math.radians(bearing)
    phi2 = math.asin(
        math.sin(phi1) * math.cos(delta) + math.cos(phi1) * math.sin(delta) * math.cos(theta)
    )
    lambda2 = math.radians(lng) + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )
    dest_lng = (math.degrees(lambda2) + 540) % 360 - 180
    return max(-90.0, min(90.0, math.degrees(phi2))), dest_lng


def test_bounds_cover_every_point_within_the_radius():
    rng = random.Random(20240501)
    radii = [50, 1000, 25000, 200000, 508000, 1500000, 4000000]
    misses = []
    for _ in range(400):
        center = (rng.uniform(-89.5, 89.5), rng.uniform(-180, 180))
        radius_m = rng.choice(radii)
        bounds = bounds_for_circle(center, radius_m)
        for _ in range(10):
            point = _destination(*center, rng.uniform(0, radius_m * 0.999), rng.uniform(0, 360))
            if haversine_m(*center, *point) > radius_m:
                continue
            if not in_bounds(encode(*point), bounds):
                misses.append((center, radius_m, point))
    assert misses == []


def test_polar_circle_covers_the_far_side_of_the_pole():
    center = (84.91, -165.15)
    bounds = bounds_for_circle(center, 508000)
    assert in_bounds(encode(86.91, 150.13), bounds)
    assert bounds == [("0", "~")]
