import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.api.app import app
from src.db.database import Base, SiteDB, get_db, new_id, utc_now
from src.errors import Unauthenticated
from src.geo.geohash import encode
from src.identity.directory import DirectoryLookupError, UserDirectory, get_user_directory
from src.identity.verifier import Identity, get_token_verifier


class FakeVerifier:
    """Treats the bearer token as the user id; the token "bad" is rejected."""

    def verify(self, token):
        if token == "bad":
            raise Unauthenticated()
        return Identity(uid=token, email=f"{token}@example.com", email_verified=True)


class FakeDirectory(UserDirectory):
    def __init__(self, users=None):
        super().__init__(users_url="http://directory.invalid", max_workers=4)
        self.users = users or {}

    def get_display_info(self, uid):
        if uid not in self.users:
            raise DirectoryLookupError(f"User {uid} not found")
        return self.users[uid]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def directory():
    return FakeDirectory({
        "user-1": {"displayName": "Alice", "email": "alice@example.com"},
        "user-2": {"displayName": None, "email": "bob@example.com"},
    })


@pytest.fixture
def client(session_factory, directory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_verifier] = lambda: FakeVerifier()
    app.dependency_overrides[get_user_directory] = lambda: directory
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth(uid):
    return {"Authorization": f"Bearer {uid}"}


def add_site(db, latitude=40.0, longitude=-105.0, visibility="public", owner_id="owner-1", **fields):
    """Insert a campsite directly, bypassing the service layer."""
    site = SiteDB(
        id=fields.pop("id", new_id()),
        owner_id=owner_id,
        latitude=latitude,
        longitude=longitude,
        geohash=encode(latitude, longitude),
        visibility=visibility,
        title=fields.pop("title", "Campsite"),
        description=fields.pop("description", ""),
        review_count=fields.pop("review_count", 0),
        created_at=fields.pop("created_at", utc_now()),
        updated_at=utc_now(),
        **fields,
    )
    db.add(site)
    db.commit()
    return site.id


def reload_site(db, site_id):
    db.expire_all()
    return db.get(SiteDB, site_id)
