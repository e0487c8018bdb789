import requests
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header

from src import config
from src.errors import Unauthenticated

# Get logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    uid: str
    email: Optional[str] = None
    email_verified: bool = False


class TokenVerifier:
    """Verifies bearer tokens against the provider's introspection endpoint.

    The endpoint is called with the token as a bearer credential and must answer
    200 with a JSON body holding ``uid`` (or ``sub``), ``email`` and
    ``email_verified``.
    """

    def __init__(self, verify_url=None, timeout=None):
        self.verify_url = verify_url or config.IDENTITY_VERIFY_URL
        self.timeout = timeout or config.IDENTITY_TIMEOUT

    def verify(self, token):
        if not self.verify_url:
            logger.warning("IDENTITY_VERIFY_URL is not configured; rejecting token")
            raise Unauthenticated()

        try:
            response = requests.get(
                self.verify_url,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Token verification request failed: {e}")
            raise Unauthenticated()

        if response.status_code != 200:
            logger.warning(f"Token rejected by identity provider (HTTP {response.status_code})")
            raise Unauthenticated()

        try:
            data = response.json()
        except ValueError:
            logger.warning("Identity provider returned a non-JSON body")
            raise Unauthenticated()
        if not isinstance(data, dict):
            raise Unauthenticated()
        uid = data.get("uid") or data.get("sub")
        if not uid:
            raise Unauthenticated()
        return Identity(uid=uid, email=data.get("email"), email_verified=bool(data.get("email_verified")))


def _bearer_token(authorization):
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):].strip() or None


def get_token_verifier():
    return TokenVerifier()


def require_identity(
    authorization: Optional[str] = Header(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> Identity:
    token = _bearer_token(authorization)
    if token is None:
        raise Unauthenticated("No token provided")
    return verifier.verify(token)


def optional_identity(
    authorization: Optional[str] = Header(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> Optional[Identity]:
    token = _bearer_token(authorization)
    if token is None:
        return None
    try:
        return verifier.verify(token)
    except Unauthenticated:
        # Invalid tokens fall back to anonymous access here
        logger.info("Ignoring invalid token on optional-auth request")
        return None
