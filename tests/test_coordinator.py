import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from conftest import add_site, reload_site
from src.db.database import ReviewDB, new_id
from src.errors import Forbidden, SiteNotFound, StoreUnavailable
from src.reviews.coordinator import aggregate, site_transaction


def test_aggregate_rules():
    assert aggregate([]) == (None, 0)
    assert aggregate([5]) == (5.0, 1)
    assert aggregate([1, 2]) == (1.5, 2)
    assert aggregate([5, 4, 4]) == (4.33, 3)
    assert aggregate([1, 1, 2]) == (1.33, 3)
    # Exact halves round up
    assert aggregate([3, 2, 2, 2, 2, 2, 2, 2]) == (2.13, 8)
    assert aggregate([3, 3, 3, 3, 3, 2, 2, 2]) == (2.63, 8)
    assert aggregate([1, 1, 1, 1, 1, 1, 1, 2]) == (1.13, 8)


def test_commit_recomputes_aggregate(db):
    site_id = add_site(db)
    with site_transaction(db, site_id):
        db.add(ReviewDB(id=new_id(), site_id=site_id, author_id="user-1", rating=4))
        db.add(ReviewDB(id=new_id(), site_id=site_id, author_id="user-2", rating=5))
        db.add(ReviewDB(id=new_id(), site_id=site_id, author_id="user-3", rating=1, hidden=True))

    site = reload_site(db, site_id)
    assert site.review_count == 2
    assert site.average_rating == 4.5


def test_domain_error_rolls_back_everything(db):
    site_id = add_site(db)
    with pytest.raises(Forbidden):
        with site_transaction(db, site_id):
            db.add(ReviewDB(id=new_id(), site_id=site_id, author_id="user-1", rating=4))
            db.flush()
            raise Forbidden()

    assert db.query(ReviewDB).count() == 0
    site = reload_site(db, site_id)
    assert site.review_count == 0
    assert site.average_rating is None


def test_missing_site(db):
    with pytest.raises(SiteNotFound):
        with site_transaction(db, "missing"):
            pass


def test_store_failure_is_retryable():
    engine = create_engine("sqlite://", poolclass=StaticPool)
    session = sessionmaker(bind=engine)()
    try:
        with pytest.raises(StoreUnavailable) as excinfo:
            with site_transaction(session, "any"):
                pass
        assert excinfo.value.retryable
        assert excinfo.value.status_code == 503
    finally:
        session.close()
        engine.dispose()
