"""Campsite search.

Candidates come either from one geohash range query per covering bound (then
refined to the true circle) or, without a location filter, from a full scan of
public sites. Every other filter is a pure predicate applied in memory, so
their order never changes the result set.
"""
from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src import config
from src.db.database import SiteDB
from src.errors import SearchUnavailable
from src.geo.geohash import bounds_for_circle
from src.geo.proximity import refine
from src.models.review import Pagination
from src.models.search import AppliedFilters, LocationFilter, SearchFilters, SearchResponse
from src.models.site import Location, SiteSummary

logger = logging.getLogger(__name__)

# (site, distance in meters or None)
Candidate = Tuple[SiteDB, Optional[float]]


def _public_sites(db: Session):
    return db.query(SiteDB).filter(SiteDB.visibility == "public")


def fetch_within_radius(db: Session, center: Tuple[float, float], radius_m: float) -> List[Candidate]:
    bounds = bounds_for_circle(center, radius_m)
    logger.debug(f"Radius search around {center} ({radius_m:.0f} m) uses {len(bounds)} geohash ranges")

    seen: Dict[str, SiteDB] = {}
    for start, end in bounds:
        rows = (
            _public_sites(db)
            .filter(SiteDB.geohash >= start, SiteDB.geohash < end)
            .order_by(SiteDB.geohash)
            .all()
        )
        for site in rows:
            seen.setdefault(site.id, site)

    return refine(seen.values(), center, radius_m)


def fetch_all_public(db: Session) -> List[Candidate]:
    return [(site, None) for site in _public_sites(db).all()]


def _matches(site: SiteDB, filters: SearchFilters) -> bool:
    if filters.min_rating:
        if site.average_rating is None or site.average_rating < filters.min_rating:
            return False
    if filters.has_photos and not site.has_photos:
        return False
    text = filters.text
    if text:
        needle = text.lower()
        title = (site.title or "").lower()
        description = (site.description or "").lower()
        if needle not in title and needle not in description:
            return False
    return True


def _timestamp(site: SiteDB) -> float:
    return site.created_at.timestamp() if site.created_at else 0.0


def sort_candidates(candidates: List[Candidate], sort: str, has_location: bool) -> List[Candidate]:
    # Newest first, then id, breaks every tie so repeated searches agree
    ordered = sorted(candidates, key=lambda c: c[0].id)
    ordered.sort(key=lambda c: _timestamp(c[0]), reverse=True)

    if sort == "rating":
        ordered.sort(key=lambda c: c[0].average_rating or 0, reverse=True)
    elif sort == "reviewCount":
        ordered.sort(key=lambda c: c[0].review_count or 0, reverse=True)
    elif sort == "distance" and has_location:
        ordered.sort(key=lambda c: c[1] if c[1] is not None else math.inf)
    # "distance" without a location filter keeps newest-first
    return ordered


def to_summary(site: SiteDB, distance_m: Optional[float] = None) -> SiteSummary:
    return SiteSummary(
        id=site.id,
        title=site.title,
        description=site.description or "",
        location=Location(latitude=site.latitude, longitude=site.longitude),
        photos=list(site.photo_urls or []),
        has_photos=bool(site.has_photos),
        average_rating=site.average_rating,
        review_count=site.review_count or 0,
        created_at=site.created_at,
        distance=distance_m / config.METERS_PER_MILE if distance_m is not None else None,
    )


def search(db: Session, filters: SearchFilters) -> SearchResponse:
    try:
        if filters.has_location:
            radius_m = filters.radius * config.METERS_PER_MILE
            candidates = fetch_within_radius(db, (filters.lat, filters.lng), radius_m)
        else:
            candidates = fetch_all_public(db)
    except SQLAlchemyError as e:
        logger.error(f"Search query failed: {str(e)}")
        raise SearchUnavailable() from e

    candidates = [c for c in candidates if _matches(c[0], filters)]
    candidates = sort_candidates(candidates, filters.sort, filters.has_location)

    total = len(candidates)
    offset = (filters.page - 1) * filters.limit
    page = candidates[offset:offset + filters.limit]

    location = None
    if filters.has_location:
        location = LocationFilter(lat=filters.lat, lng=filters.lng, radius=filters.radius)

    return SearchResponse(
        results=[to_summary(site, distance) for site, distance in page],
        pagination=Pagination(
            page=filters.page,
            limit=filters.limit,
            total=total,
            total_pages=math.ceil(total / filters.limit),
        ),
        filters=AppliedFilters(
            text_search=filters.text,
            location=location,
            min_rating=filters.min_rating,
            has_photos=filters.has_photos,
            sort=filters.sort,
        ),
    )
