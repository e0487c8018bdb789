import requests
import time
import logging
import concurrent.futures
from functools import lru_cache
from threading import Lock

from src import config

# Constants
REQUEST_TIMEOUT = config.IDENTITY_TIMEOUT
RETRY_DELAY = 0.2
MAX_RETRIES = 2

# Get logger
logger = logging.getLogger(__name__)


class DirectoryLookupError(Exception):
    pass


class UserDirectory:
    """Best-effort display info for user ids, from the identity provider.

    Results are cached per instance. ``get_display_info`` raises
    DirectoryLookupError on failure; ``batch_display_info`` never raises and maps
    unresolved ids to None.
    """

    def __init__(self, users_url=None, max_workers=None):
        self.users_url = users_url or config.IDENTITY_USERS_URL
        self.max_workers = max_workers or config.DIRECTORY_MAX_WORKERS
        # Format: {uid: {"displayName": ..., "email": ...}}
        self._cache = {}
        self._cache_lock = Lock()

    def get_display_info(self, uid):
        with self._cache_lock:
            if uid in self._cache:
                return self._cache[uid]

        if not self.users_url:
            raise DirectoryLookupError("IDENTITY_USERS_URL is not configured")

        url = f"{self.users_url.rstrip('/')}/{uid}"
        retries = 0
        while retries < MAX_RETRIES:
            try:
                response = requests.get(url, timeout=REQUEST_TIMEOUT)

                if response.status_code == 200:
                    data = response.json()
                    info = {
                        "displayName": data.get("displayName") or data.get("display_name"),
                        "email": data.get("email"),
                    }
                    with self._cache_lock:
                        self._cache[uid] = info
                    return info

                if response.status_code == 404:
                    raise DirectoryLookupError(f"User {uid} not found")

                retries += 1
                logger.warning(f"User lookup HTTP error ({response.status_code}) for {uid} (Attempt {retries}/{MAX_RETRIES})")
            except requests.RequestException as e:
                retries += 1
                logger.warning(f"Network error looking up user {uid}: {e} (Attempt {retries}/{MAX_RETRIES})")
            time.sleep(RETRY_DELAY * retries)

        raise DirectoryLookupError(f"Failed to look up user {uid} after {MAX_RETRIES} attempts")

    def batch_display_info(self, uids):
        uids = list(uids)
        results = {}
        if not uids:
            return results

        workers = min(self.max_workers, len(uids))
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_uid = {executor.submit(self.get_display_info, uid): uid for uid in uids}

            for future in concurrent.futures.as_completed(future_to_uid):
                uid = future_to_uid[future]
                try:
                    results[uid] = future.result()
                except Exception as e:
                    # Display info is decoration only; the review is still listed
                    logger.warning(f"Error fetching user info for {uid}: {e}")
                    results[uid] = None

        return results


# One directory per process, so its cache spans requests
@lru_cache(maxsize=1)
def get_user_directory():
    return UserDirectory()
