import pytest

from conftest import add_site, reload_site
from src.db.database import RatingLimitDB, ReviewDB
from src.errors import Forbidden, InvalidCoordinate, SiteNotFound
from src.geo.geohash import encode
from src.models.site import SiteCreate, SiteUpdate
from src.reviews.engine import submit_review
from src.sites.service import create_site, delete_site, get_site, list_sites, to_detail, update_site


def new_site(**overrides):
    fields = dict(latitude=40.0, longitude=-105.0, title="Ridge Camp", visibility="public")
    fields.update(overrides)
    return SiteCreate(**fields)


def test_create_computes_geohash_and_empty_aggregate(db):
    site = create_site(db, "owner-1", new_site())
    assert site.geohash == encode(40.0, -105.0)
    assert site.review_count == 0
    assert site.average_rating is None
    assert site.owner_id == "owner-1"


def test_create_rejects_bad_coordinates(db):
    payload = SiteCreate.model_construct(latitude=120.0, longitude=0.0, title="Bad", description="", visibility="public")
    with pytest.raises(InvalidCoordinate):
        create_site(db, "owner-1", payload)


def test_visibility_rules(db):
    private_id = add_site(db, visibility="private", owner_id="owner-1")
    unlisted_id = add_site(db, visibility="unlisted", owner_id="owner-1")

    assert get_site(db, private_id, "owner-1").id == private_id
    with pytest.raises(Forbidden):
        get_site(db, private_id, "someone-else")
    with pytest.raises(Forbidden):
        get_site(db, private_id)
    assert get_site(db, unlisted_id).id == unlisted_id
    with pytest.raises(SiteNotFound):
        get_site(db, "missing")


def test_list_sites_includes_own_private(db):
    public_id = add_site(db, visibility="public", owner_id="owner-2")
    private_id = add_site(db, visibility="private", owner_id="owner-1")

    assert {s.id for s in list_sites(db)} == {public_id}
    assert {s.id for s in list_sites(db, "owner-1")} == {public_id, private_id}


def test_owner_id_only_shown_to_owner(db):
    site = reload_site(db, add_site(db, owner_id="owner-1"))
    assert to_detail(site, "owner-1").owner_id == "owner-1"
    assert to_detail(site, "someone-else").owner_id is None


def test_update_cannot_touch_coordinates_or_aggregate(db):
    site_id = add_site(db, owner_id="owner-1")
    submit_review(db, site_id, 4, author_id="user-1")

    payload = SiteUpdate.model_validate({
        "title": "Renamed",
        "latitude": 10.0,
        "geohash": "s000000000",
        "averageRating": 1.0,
        "reviewCount": 50,
    })
    site = update_site(db, site_id, "owner-1", payload)
    assert site.title == "Renamed"
    assert site.latitude == 40.0
    assert site.geohash == encode(40.0, -105.0)
    assert site.average_rating == 4.0
    assert site.review_count == 1


def test_update_requires_owner(db):
    site_id = add_site(db, owner_id="owner-1")
    with pytest.raises(Forbidden):
        update_site(db, site_id, "owner-2", SiteUpdate(title="Mine now"))


def test_delete_removes_reviews_and_ledger(db):
    site_id = add_site(db, owner_id="owner-1")
    submit_review(db, site_id, 4, author_id="user-1")
    submit_review(db, site_id, 3, origin_address="1.2.3.4")

    with pytest.raises(Forbidden):
        delete_site(db, site_id, "owner-2")
    delete_site(db, site_id, "owner-1")

    db.expire_all()
    assert reload_site(db, site_id) is None
    assert db.query(ReviewDB).count() == 0
    assert db.query(RatingLimitDB).count() == 0
