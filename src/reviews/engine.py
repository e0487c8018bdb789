from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import Optional, Tuple

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src import config
from src.db.database import RatingLimitDB, ReviewDB, ReviewFlagDB, SiteDB, new_id, utc_now
from src.errors import (
    AlreadyFlagged,
    CommentRequiresIdentity,
    CommentTooLong,
    Forbidden,
    InvalidRating,
    RateLimited,
    ReasonRequired,
    ReviewNotFound,
    SiteNotFound,
    StoreUnavailable,
)
from src.models.review import Pagination, ReviewAuthor, ReviewOut, ReviewPage
from src.reviews.coordinator import site_transaction

logger = logging.getLogger(__name__)

REVIEW_SORTS = ("newest", "highest", "lowest")


def validate_rating(rating) -> int:
    # bool is an int subclass; integral floats arrive from JSON clients as 5.0
    if isinstance(rating, bool):
        raise InvalidRating()
    if isinstance(rating, float) and rating.is_integer():
        rating = int(rating)
    if not isinstance(rating, int) or not 1 <= rating <= 5:
        raise InvalidRating()
    return rating


def validate_comment(comment: Optional[str], author_id: Optional[str]) -> Optional[str]:
    if not comment:
        return None
    if author_id is None:
        raise CommentRequiresIdentity()
    if len(comment) > config.MAX_COMMENT_LENGTH:
        raise CommentTooLong()
    return comment


def _check_rate_limit(db: Session, origin_address: str, site_id: str, now) -> None:
    window_start = now - timedelta(hours=config.ANONYMOUS_RATING_WINDOW_HOURS)
    recent = (
        db.query(RatingLimitDB.id)
        .filter(
            RatingLimitDB.origin_address == origin_address,
            RatingLimitDB.site_id == site_id,
            RatingLimitDB.created_at > window_start,
        )
        .first()
    )
    if recent is not None:
        raise RateLimited()


def submit_review(
    db: Session,
    site_id: str,
    rating,
    comment: Optional[str] = None,
    author_id: Optional[str] = None,
    origin_address: Optional[str] = None,
) -> Tuple[str, bool]:
    """
    Create a review, or update the requester's existing one for this campsite.

    Anonymous ratings carry no comment and are limited to one per origin address
    and campsite within the rating window.

    Returns:
        Tuple of (review_id, created)
    """
    rating = validate_rating(rating)
    comment = validate_comment(comment, author_id)
    origin_address = origin_address or "unknown"
    now = utc_now()

    with site_transaction(db, site_id):
        review = None
        if author_id is None:
            _check_rate_limit(db, origin_address, site_id, now)
            db.add(RatingLimitDB(origin_address=origin_address, site_id=site_id, created_at=now))
        else:
            review = (
                db.query(ReviewDB)
                .filter(ReviewDB.site_id == site_id, ReviewDB.author_id == author_id)
                .with_for_update()
                .populate_existing()
                .first()
            )

        created = review is None
        if created:
            review = ReviewDB(
                id=new_id(),
                site_id=site_id,
                author_id=author_id,
                origin_address=None if author_id else origin_address,
                created_at=now,
            )
            db.add(review)

        review.rating = rating
        review.comment = comment
        review.updated_at = now
        review_id = review.id

    logger.info(f"Review {'created' if created else 'updated'} for campsite {site_id}")
    return review_id, created


def _find_review(db: Session, review_id: str, site_id: Optional[str]) -> ReviewDB:
    try:
        review = db.get(ReviewDB, review_id)
    except SQLAlchemyError as e:
        logger.error(f"Error loading review {review_id}: {str(e)}")
        raise StoreUnavailable() from e
    # A review addressed through another campsite is treated as missing
    if review is None or (site_id is not None and review.site_id != site_id):
        raise ReviewNotFound()
    return review


def _lock_review(db: Session, review_id: str) -> ReviewDB:
    review = (
        db.query(ReviewDB)
        .filter(ReviewDB.id == review_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if review is None:
        raise ReviewNotFound()
    return review


def _require_author(review: ReviewDB, requester_id: Optional[str], action: str) -> None:
    if review.author_id is None or review.author_id != requester_id:
        raise Forbidden(f"Not authorized to {action} this review")


def update_review(
    db: Session,
    review_id: str,
    requester_id: str,
    rating=None,
    comment: Optional[str] = None,
    site_id: Optional[str] = None,
) -> None:
    if rating is not None:
        rating = validate_rating(rating)
    if comment is not None and len(comment) > config.MAX_COMMENT_LENGTH:
        raise CommentTooLong()

    review = _find_review(db, review_id, site_id)
    with site_transaction(db, review.site_id):
        review = _lock_review(db, review_id)
        _require_author(review, requester_id, "update")
        if rating is not None:
            review.rating = rating
        if comment is not None:
            review.comment = comment or None
        review.updated_at = utc_now()

    logger.info(f"Review {review_id} updated")


def delete_review(db: Session, review_id: str, requester_id: str, site_id: Optional[str] = None) -> None:
    review = _find_review(db, review_id, site_id)
    with site_transaction(db, review.site_id):
        review = _lock_review(db, review_id)
        _require_author(review, requester_id, "delete")
        db.delete(review)

    logger.info(f"Review {review_id} deleted")


def flag_review(
    db: Session,
    review_id: str,
    flagger_id: str,
    reason: Optional[str],
    site_id: Optional[str] = None,
) -> bool:
    """Record a moderation flag; returns whether the review is now hidden."""
    reason = (reason or "").strip()
    if not reason:
        raise ReasonRequired()

    review = _find_review(db, review_id, site_id)
    with site_transaction(db, review.site_id):
        review = _lock_review(db, review_id)
        existing = (
            db.query(ReviewFlagDB.id)
            .filter(ReviewFlagDB.review_id == review_id, ReviewFlagDB.flagger_id == flagger_id)
            .first()
        )
        if existing is not None:
            raise AlreadyFlagged()

        db.add(ReviewFlagDB(review_id=review_id, flagger_id=flagger_id, reason=reason[:500], created_at=utc_now()))
        try:
            db.flush()
        except IntegrityError:
            # Lost a race with the same flagger
            raise AlreadyFlagged()

        review.flag_count = (review.flag_count or 0) + 1
        if review.flag_count >= config.FLAG_HIDE_THRESHOLD:
            review.hidden = True
        hidden = review.hidden

    if hidden:
        logger.info(f"Review {review_id} hidden after {config.FLAG_HIDE_THRESHOLD} flags")
    return hidden


def list_reviews(
    db: Session,
    site_id: str,
    page: int = 1,
    limit: int = config.REVIEWS_DEFAULT_LIMIT,
    sort: str = "newest",
    directory=None,
) -> ReviewPage:
    """
    List the visible reviews of a campsite.

    Args:
        page: 1-based page number
        limit: Page size, clamped to REVIEWS_MAX_LIMIT
        sort: newest, highest or lowest; ties are broken newest first
        directory: Optional UserDirectory used to attach author display info
    """
    page = max(1, page)
    limit = min(max(1, limit), config.REVIEWS_MAX_LIMIT)
    if sort not in REVIEW_SORTS:
        sort = "newest"

    try:
        if db.get(SiteDB, site_id) is None:
            raise SiteNotFound()

        query = db.query(ReviewDB).filter(ReviewDB.site_id == site_id, ReviewDB.hidden.is_(False))
        if sort == "highest":
            query = query.order_by(desc(ReviewDB.rating), desc(ReviewDB.created_at), desc(ReviewDB.id))
        elif sort == "lowest":
            query = query.order_by(ReviewDB.rating, desc(ReviewDB.created_at), desc(ReviewDB.id))
        else:
            query = query.order_by(desc(ReviewDB.created_at), desc(ReviewDB.id))

        total = query.count()
        rows = query.offset((page - 1) * limit).limit(limit).all()
    except SQLAlchemyError as e:
        logger.error(f"Error listing reviews for campsite {site_id}: {str(e)}")
        raise StoreUnavailable() from e

    author_ids = {r.author_id for r in rows if r.author_id}
    authors = directory.batch_display_info(author_ids) if directory and author_ids else {}

    reviews = []
    for review in rows:
        info = authors.get(review.author_id) if review.author_id else None
        user = ReviewAuthor(display_name=info.get("displayName") or "Anonymous", email=info.get("email")) if info else None
        reviews.append(ReviewOut(
            id=review.id,
            rating=review.rating,
            comment=review.comment,
            created_at=review.created_at,
            updated_at=review.updated_at,
            user=user,
            # Unresolved authors are shown as anonymous
            is_anonymous=user is None,
        ))

    return ReviewPage(
        reviews=reviews,
        pagination=Pagination(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit)),
    )
