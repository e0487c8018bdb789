"""Service configuration.

Everything is read from environment variables once, at import time.
"""
import os


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


DB_URL = os.getenv("DB_URL", "sqlite:///./campsites.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Geohash
GEOHASH_PRECISION = int(os.getenv("GEOHASH_PRECISION", "10"))
METERS_PER_MILE = 1609.34

# Moderation and abuse control
FLAG_HIDE_THRESHOLD = int(os.getenv("FLAG_HIDE_THRESHOLD", "3"))
ANONYMOUS_RATING_WINDOW_HOURS = int(os.getenv("ANONYMOUS_RATING_WINDOW_HOURS", "24"))
MAX_COMMENT_LENGTH = 1000

# Pagination
SEARCH_DEFAULT_LIMIT = int(os.getenv("SEARCH_DEFAULT_LIMIT", "20"))
SEARCH_MAX_LIMIT = int(os.getenv("SEARCH_MAX_LIMIT", "100"))
REVIEWS_DEFAULT_LIMIT = int(os.getenv("REVIEWS_DEFAULT_LIMIT", "10"))
REVIEWS_MAX_LIMIT = int(os.getenv("REVIEWS_MAX_LIMIT", "50"))

# Identity provider
IDENTITY_VERIFY_URL = os.getenv("IDENTITY_VERIFY_URL")
IDENTITY_USERS_URL = os.getenv("IDENTITY_USERS_URL")
IDENTITY_TIMEOUT = float(os.getenv("IDENTITY_TIMEOUT", "5"))
DIRECTORY_MAX_WORKERS = int(os.getenv("DIRECTORY_MAX_WORKERS", "8"))

# Honour X-Forwarded-For when running behind a proxy
TRUST_FORWARDED_FOR = _env_bool("TRUST_FORWARDED_FOR")
