from sqlalchemy import (
    create_engine, Column, String, Float, Boolean, DateTime, Integer, Text, JSON,
    ForeignKey, Index, UniqueConstraint, event,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from datetime import datetime, timezone
import uuid
import logging

from src import config

# Get logger
logger = logging.getLogger(__name__)

Base = declarative_base()


def utc_now():
    # Stored naive, always UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id():
    return uuid.uuid4().hex


# Campsite records. average_rating and review_count are derived from the
# non-hidden reviews and only written by the review coordinator.
class SiteDB(Base):
    __tablename__ = "campsites"
    id = Column(String, primary_key=True, default=new_id)
    owner_id = Column(String, nullable=False, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    # Byte-order collation so range bounds compare like the geohash alphabet
    geohash = Column(String(12).with_variant(String(12, collation="C"), "postgresql"), nullable=False)
    visibility = Column(String(16), nullable=False, default="private")
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    average_rating = Column(Float, nullable=True)
    review_count = Column(Integer, nullable=False, default=0)
    has_photos = Column(Boolean, nullable=False, default=False)
    photo_urls = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_campsites_visibility_geohash", "visibility", "geohash"),
    )


class ReviewDB(Base):
    __tablename__ = "reviews"
    id = Column(String, primary_key=True, default=new_id)
    site_id = Column(String, ForeignKey("campsites.id", ondelete="CASCADE"), nullable=False)
    author_id = Column(String, nullable=True)  # None for anonymous ratings
    origin_address = Column(String, nullable=True)  # Only kept for anonymous ratings
    rating = Column(Integer, nullable=False)
    comment = Column(String(1000), nullable=True)
    flag_count = Column(Integer, nullable=False, default=0)
    hidden = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now)

    flags = relationship(
        "ReviewFlagDB",
        back_populates="review",
        cascade="all, delete-orphan",
        order_by="ReviewFlagDB.created_at",
    )

    __table_args__ = (
        Index("idx_reviews_site_hidden", "site_id", "hidden"),
        # Anonymous reviews have a NULL author and never collide
        UniqueConstraint("site_id", "author_id", name="unique_site_author"),
    )


class ReviewFlagDB(Base):
    __tablename__ = "review_flags"
    id = Column(Integer, primary_key=True, autoincrement=True)
    review_id = Column(String, ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False)
    flagger_id = Column(String, nullable=False)
    reason = Column(String(500), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    review = relationship("ReviewDB", back_populates="flags")

    __table_args__ = (
        UniqueConstraint("review_id", "flagger_id", name="unique_review_flagger"),
    )


# One row per accepted anonymous rating, keyed by (origin_address, site_id)
class RatingLimitDB(Base):
    __tablename__ = "rating_limits"
    id = Column(Integer, primary_key=True, autoincrement=True)
    origin_address = Column(String, nullable=False)
    site_id = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_rating_limits_origin_site", "origin_address", "site_id", "created_at"),
    )


def make_engine(url, **kwargs):
    connect_args = {}
    if url.startswith("sqlite"):
        # FastAPI serves sync routes from a thread pool
        connect_args["check_same_thread"] = False
    engine = create_engine(url, connect_args=connect_args, **kwargs)
    if url.startswith("sqlite"):
        _begin_immediate(engine)
    return engine


def _begin_immediate(engine):
    # SQLite ignores FOR UPDATE; take the write lock when the transaction starts
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


engine = make_engine(config.DB_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(bind=None):
    try:
        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database tables created (if they didn't exist previously).")
    except Exception as e:
        logger.error(f"Error creating database tables: {e}")
        raise


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
