"""Transactional wrapper for review writes.

The campsite row is locked for the whole transaction, so concurrent writes to
reviews of the same site serialize. The aggregate is recomputed from a fresh
read of the non-hidden review set inside that transaction.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Iterator, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.db.database import ReviewDB, SiteDB, utc_now
from src.errors import CampsiteError, SiteNotFound, StoreUnavailable

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def aggregate(ratings: Iterable[int]) -> Tuple[Optional[float], int]:
    """Mean rating rounded half up to 2 places and the count; no mean for an empty set."""
    ratings = list(ratings)
    count = len(ratings)
    if count == 0:
        return None, 0
    mean = (Decimal(sum(ratings)) / count).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    return float(mean), count


def recompute_aggregate(db: Session, site: SiteDB) -> None:
    ratings = [
        rating for (rating,) in db.query(ReviewDB.rating)
        .filter(ReviewDB.site_id == site.id, ReviewDB.hidden.is_(False))
        .all()
    ]
    site.average_rating, site.review_count = aggregate(ratings)
    site.updated_at = utc_now()


@contextmanager
def site_transaction(db: Session, site_id: str) -> Iterator[SiteDB]:
    """Lock ``site_id``, run the body, recompute its aggregate and commit.

    Domain errors roll back and propagate unchanged; storage errors roll back
    and surface as StoreUnavailable.
    """
    try:
        site = (
            db.query(SiteDB)
            .filter(SiteDB.id == site_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if site is None:
            raise SiteNotFound()

        yield site

        # Session is created with autoflush off
        db.flush()
        recompute_aggregate(db, site)
        db.commit()
    except CampsiteError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Transaction on campsite {site_id} failed: {str(e)}")
        raise StoreUnavailable() from e
    except Exception:
        db.rollback()
        raise
