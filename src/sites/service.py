from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.db.database import RatingLimitDB, ReviewDB, SiteDB, new_id, utc_now
from src.errors import Forbidden, SiteNotFound, StoreUnavailable
from src.geo.geohash import encode
from src.models.site import Location, SiteCreate, SiteDetail, SiteUpdate

logger = logging.getLogger(__name__)


def to_detail(site: SiteDB, requester_id: Optional[str] = None) -> SiteDetail:
    is_owner = requester_id is not None and requester_id == site.owner_id
    return SiteDetail(
        id=site.id,
        title=site.title,
        description=site.description or "",
        location=Location(latitude=site.latitude, longitude=site.longitude),
        photos=list(site.photo_urls or []),
        has_photos=bool(site.has_photos),
        average_rating=site.average_rating,
        review_count=site.review_count or 0,
        created_at=site.created_at,
        updated_at=site.updated_at,
        visibility=site.visibility,
        owner_id=site.owner_id if is_owner else None,
    )


def _load(db: Session, site_id: str) -> SiteDB:
    site = db.get(SiteDB, site_id)
    if site is None:
        raise SiteNotFound()
    return site


def _can_view(site: SiteDB, requester_id: Optional[str]) -> bool:
    if site.visibility in ("public", "unlisted"):
        return True
    return requester_id is not None and site.owner_id == requester_id


def create_site(db: Session, owner_id: str, payload: SiteCreate) -> SiteDB:
    geohash = encode(payload.latitude, payload.longitude)
    now = utc_now()
    site = SiteDB(
        id=new_id(),
        owner_id=owner_id,
        latitude=payload.latitude,
        longitude=payload.longitude,
        geohash=geohash,
        visibility=payload.visibility,
        title=payload.title,
        description=payload.description or "",
        average_rating=None,
        review_count=0,
        has_photos=False,
        photo_urls=[],
        created_at=now,
        updated_at=now,
    )
    try:
        db.add(site)
        db.commit()
        db.refresh(site)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating campsite: {str(e)}")
        raise StoreUnavailable() from e

    logger.info(f"Created campsite {site.id} ({site.visibility}) at geohash {geohash}")
    return site


def get_site(db: Session, site_id: str, requester_id: Optional[str] = None) -> SiteDB:
    try:
        site = _load(db, site_id)
    except SQLAlchemyError as e:
        logger.error(f"Error retrieving campsite {site_id}: {str(e)}")
        raise StoreUnavailable() from e
    if not _can_view(site, requester_id):
        raise Forbidden("Access denied")
    return site


def list_sites(db: Session, requester_id: Optional[str] = None) -> List[SiteDB]:
    """Public campsites, plus every campsite the requester owns."""
    query = db.query(SiteDB)
    if requester_id:
        query = query.filter(or_(SiteDB.visibility == "public", SiteDB.owner_id == requester_id))
    else:
        query = query.filter(SiteDB.visibility == "public")
    try:
        return query.order_by(SiteDB.created_at.desc(), SiteDB.id).all()
    except SQLAlchemyError as e:
        logger.error(f"Error listing campsites: {str(e)}")
        raise StoreUnavailable() from e


def update_site(db: Session, site_id: str, requester_id: str, payload: SiteUpdate) -> SiteDB:
    try:
        site = _load(db, site_id)
        if site.owner_id != requester_id:
            raise Forbidden("You do not have permission to edit this campsite")

        # exclude_unset keeps omitted fields untouched
        for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(site, field, value)
        site.updated_at = utc_now()
        db.commit()
        db.refresh(site)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating campsite {site_id}: {str(e)}")
        raise StoreUnavailable() from e

    logger.info(f"Updated campsite {site_id}")
    return site


def delete_site(db: Session, site_id: str, requester_id: str) -> None:
    try:
        site = _load(db, site_id)
        if site.owner_id != requester_id:
            raise Forbidden("You do not have permission to delete this campsite")

        for review in db.query(ReviewDB).filter(ReviewDB.site_id == site_id).all():
            db.delete(review)
        db.flush()
        db.query(RatingLimitDB).filter(RatingLimitDB.site_id == site_id).delete(synchronize_session=False)
        db.delete(site)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting campsite {site_id}: {str(e)}")
        raise StoreUnavailable() from e

    logger.info(f"Deleted campsite {site_id}")
