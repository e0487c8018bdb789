"""Geohash index adapter.

Sites are stored with a fixed-precision geohash. A circular search area is
covered by a handful of half-open ``[start, end)`` geohash ranges, one per
distinct cell touched by the circle's bounding box.
"""
from __future__ import annotations

import math
from typing import List, Tuple

import pygeohash

from src import config
from src.errors import InvalidCoordinate

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
BITS_PER_CHAR = 5
MAXIMUM_BITS_PRECISION = 22 * BITS_PER_CHAR

EARTH_MERIDIONAL_CIRCUMFERENCE_M = 40007860
METERS_PER_DEGREE_LATITUDE = 110574
EARTH_EQUATORIAL_RADIUS_M = 6378137.0
E2 = 0.00669447819799  # WGS84 eccentricity squared
EPSILON = 1e-12

# Sorts after every base32 character
RANGE_END_SENTINEL = "~"


def validate_coordinates(lat, lng) -> None:
    try:
        lat = float(lat)
        lng = float(lng)
    except (TypeError, ValueError):
        raise InvalidCoordinate()
    if math.isnan(lat) or math.isnan(lng):
        raise InvalidCoordinate()
    if not -90 <= lat <= 90:
        raise InvalidCoordinate(f"Invalid latitude: {lat}")
    if not -180 <= lng <= 180:
        raise InvalidCoordinate(f"Invalid longitude: {lng}")


def encode(lat: float, lng: float, precision: int = config.GEOHASH_PRECISION) -> str:
    validate_coordinates(lat, lng)
    return pygeohash.encode(float(lat), float(lng), precision=precision)


def _wrap_longitude(lng: float) -> float:
    if -180 <= lng <= 180:
        return lng
    adjusted = lng + 180
    if adjusted > 0:
        return (adjusted % 360) - 180
    return 180 - (-adjusted % 360)


def _meters_to_longitude_degrees(distance: float, lat: float) -> float:
    radians = math.radians(lat)
    num = math.cos(radians) * EARTH_EQUATORIAL_RADIUS_M * math.pi / 180
    denom = 1 / math.sqrt(1 - E2 * math.sin(radians) * math.sin(radians))
    delta_deg = num * denom
    if delta_deg < EPSILON:
        return 360.0 if distance > 0 else 0.0
    return min(360.0, distance / delta_deg)


def _longitude_bits(resolution: float, lat: float) -> float:
    degs = _meters_to_longitude_degrees(resolution, lat)
    return max(1.0, math.log2(360 / degs)) if abs(degs) > 0.000001 else 1.0


def _latitude_bits(resolution: float) -> float:
    return min(math.log2(EARTH_MERIDIONAL_CIRCUMFERENCE_M / 2 / resolution), MAXIMUM_BITS_PRECISION)


def _bounding_box_bits(lat: float, radius_m: float) -> int:
    lat_delta = radius_m / METERS_PER_DEGREE_LATITUDE
    lat_north = min(90.0, lat + lat_delta)
    lat_south = max(-90.0, lat - lat_delta)
    bits_lat = math.floor(_latitude_bits(radius_m)) * 2
    bits_lng_north = math.floor(_longitude_bits(radius_m, lat_north)) * 2 - 1
    bits_lng_south = math.floor(_longitude_bits(radius_m, lat_south)) * 2 - 1
    return min(bits_lat, bits_lng_north, bits_lng_south, MAXIMUM_BITS_PRECISION)


def _longitude_span(lat: float, radius_m: float) -> float:
    """Half-width in degrees of the circle's bounding box, widest edge."""
    lat_degrees = radius_m / METERS_PER_DEGREE_LATITUDE
    lat_north = min(90.0, lat + lat_degrees)
    lat_south = max(-90.0, lat - lat_degrees)
    return max(
        _meters_to_longitude_degrees(radius_m, lat_north),
        _meters_to_longitude_degrees(radius_m, lat_south),
    )


def _bounding_box_points(lat: float, lng: float, radius_m: float) -> List[Tuple[float, float]]:
    lat_degrees = radius_m / METERS_PER_DEGREE_LATITUDE
    lat_north = min(90.0, lat + lat_degrees)
    lat_south = max(-90.0, lat - lat_degrees)
    lng_degrees = _longitude_span(lat, radius_m)
    west = _wrap_longitude(lng - lng_degrees)
    east = _wrap_longitude(lng + lng_degrees)
    return [
        (lat, lng), (lat, west), (lat, east),
        (lat_north, lng), (lat_north, west), (lat_north, east),
        (lat_south, lng), (lat_south, west), (lat_south, east),
    ]


def _cell_range(geohash: str, bits: int) -> Tuple[str, str]:
    """Widen ``geohash`` to the range of every hash sharing its first ``bits`` bits."""
    precision = math.ceil(bits / BITS_PER_CHAR)
    if len(geohash) < precision:
        return geohash, geohash + RANGE_END_SENTINEL
    geohash = geohash[:precision]
    base = geohash[:-1]
    last_value = BASE32.index(geohash[-1])
    significant_bits = bits - len(base) * BITS_PER_CHAR
    unused_bits = BITS_PER_CHAR - significant_bits
    start_value = (last_value >> unused_bits) << unused_bits
    end_value = start_value + (1 << unused_bits)
    if end_value > 31:
        return base + BASE32[start_value], base + RANGE_END_SENTINEL
    return base + BASE32[start_value], base + BASE32[end_value]


def bounds_for_circle(center: Tuple[float, float], radius_m: float) -> List[Tuple[str, str]]:
    """Half-open geohash ranges whose union covers the circle around ``center``."""
    lat, lng = center
    validate_coordinates(lat, lng)
    lat, lng = float(lat), float(lng)

    if _longitude_span(lat, radius_m) >= 180:
        # The box wraps the whole globe; its nine points collapse onto one meridian
        return [("0", RANGE_END_SENTINEL)]

    # Never finer than the stored hashes, or the ranges would miss them
    query_bits = max(1, min(_bounding_box_bits(lat, radius_m), config.GEOHASH_PRECISION * BITS_PER_CHAR))
    precision = math.ceil(query_bits / BITS_PER_CHAR)

    bounds: List[Tuple[str, str]] = []
    for point_lat, point_lng in _bounding_box_points(lat, lng, radius_m):
        cell = _cell_range(pygeohash.encode(point_lat, point_lng, precision=precision), query_bits)
        if cell not in bounds:
            bounds.append(cell)
    return bounds


def in_bounds(geohash: str, bounds: List[Tuple[str, str]]) -> bool:
    return any(start <= geohash < end for start, end in bounds)
