"""
Google ID token verification.

Tokens are checked against Google's tokeninfo endpoint, then the audience,
email, verification flag and expiry are enforced locally.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional, Dict, Any

import aiohttp

from ..exceptions import AuthenticationFailed
from ..runtime import RuntimeConfig

logger = logging.getLogger(__name__)

TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
VERIFY_TIMEOUT = 10.0


@dataclass
class VerifiedUser:
    email: str
    name: str = ""
    given_name: Optional[str] = None
    picture: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "name": self.name,
            "given_name": self.given_name,
            "picture": self.picture,
        }


def _is_true(value: Any) -> bool:
    # tokeninfo returns booleans as strings
    return value is True or str(value).lower() == "true"


async def fetch_token_info(token: str) -> Dict[str, Any]:
    """
    Ask Google to decode and validate the token signature.

    Raises:
        AuthenticationFailed: rejected token or unreachable endpoint
    """
    try:
        timeout = aiohttp.ClientTimeout(total=VERIFY_TIMEOUT)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(TOKENINFO_URL, params={"id_token": token}) as response:
                if response.status != 200:
                    body = await response.text()
                    logger.warning(f"Google token verification failed ({response.status}): {body[:200]}")
                    raise AuthenticationFailed("Invalid or expired token", "INVALID_TOKEN")
                return await response.json()

    except AuthenticationFailed:
        raise
    except Exception as e:
        logger.error(f"Error verifying Google token: {e}")
        raise AuthenticationFailed("Failed to verify token", "TOKEN_VERIFICATION_FAILED")


def check_token_payload(payload: Dict[str, Any], client_id: str = "", now: Optional[float] = None) -> VerifiedUser:
    """Apply the local claims checks to a decoded tokeninfo payload."""
    if client_id and payload.get("aud") != client_id:
        logger.warning(f"Token audience mismatch: expected {client_id}, got {payload.get('aud')}")
        raise AuthenticationFailed("Token not issued for this application", "INVALID_AUDIENCE")

    email = (payload.get("email") or "").strip().lower()
    if not email:
        raise AuthenticationFailed("Email not found in token", "MISSING_EMAIL")

    if not _is_true(payload.get("email_verified")):
        raise AuthenticationFailed("Email not verified", "EMAIL_NOT_VERIFIED")

    exp = payload.get("exp")
    if exp is not None:
        current = time.time() if now is None else now
        try:
            expired = int(exp) < current
        except (TypeError, ValueError):
            expired = True
        if expired:
            raise AuthenticationFailed("Token has expired", "TOKEN_EXPIRED")

    return VerifiedUser(
        email=email,
        name=payload.get("name") or email.split("@")[0],
        given_name=payload.get("given_name"),
        picture=payload.get("picture"),
    )


async def verify_google_token(token: str, config: RuntimeConfig) -> VerifiedUser:
    """Verify a Google ID token and return the caller's identity."""
    payload = await fetch_token_info(token)
    return check_token_payload(payload, config.google_client_id)
