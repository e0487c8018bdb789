"""Great-circle refinement of geohash range candidates."""
from __future__ import annotations

import math
from typing import Iterable, List, Tuple

EARTH_RADIUS_M = 6371000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def refine(candidates: Iterable, center: Tuple[float, float], radius_m: float) -> List[Tuple[object, float]]:
    """Keep candidates within ``radius_m`` of ``center``, paired with their distance.

    Geohash cells over-cover the circle, so every candidate gets an exact
    haversine check. Candidates without coordinates are dropped.
    """
    center_lat, center_lng = center
    kept = []
    for site in candidates:
        lat = getattr(site, "latitude", None)
        lng = getattr(site, "longitude", None)
        if lat is None or lng is None:
            continue
        distance = haversine_m(lat, lng, center_lat, center_lng)
        if distance <= radius_m:
            kept.append((site, distance))
    return kept
