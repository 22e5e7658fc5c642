"""Magic link and session token utilities.

Includes JWT creation and verification for one-time sign-in links and
session access tokens. Roles are never embedded in tokens; they are looked
up fresh from the role mapping.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import jwt

if TYPE_CHECKING:
    from hulugan.common import Session

LOGGER = logging.getLogger(__name__)

_MAGIC_LINK_TOKEN = "magic_link"  # noqa: S105
_ACCESS_TOKEN = "access_token"  # noqa: S105


@dataclass
class SecurityManager:
    """Manager for token signing configuration.

    :param str secret_key: Secret key for JWT signing (generated if not provided)
    :param str algorithm: JWT signing algorithm
    :param int session_expire_minutes: Session lifetime in minutes
    :param int magic_link_expire_minutes: Magic link lifetime in minutes
    """

    DEFAULT_JWT_ALGORITHM = "HS512"
    DEFAULT_SESSION_EXPIRE_MINUTES = 60 * 24
    DEFAULT_MAGIC_LINK_EXPIRE_MINUTES = 15
    MINIMUM_JWT_SECRET_KEY_LENGTH = 32

    secret_key: str | None = None
    algorithm: str = DEFAULT_JWT_ALGORITHM
    session_expire_minutes: int = DEFAULT_SESSION_EXPIRE_MINUTES
    magic_link_expire_minutes: int = DEFAULT_MAGIC_LINK_EXPIRE_MINUTES

    def __post_init__(self) -> None:
        """Generate secret key if not provided."""
        if (
            self.secret_key is None
            or len(self.secret_key) < self.MINIMUM_JWT_SECRET_KEY_LENGTH
        ):
            self.secret_key = os.urandom(64).hex()

    def magic_link_expiry(self) -> datetime:
        return datetime.now(UTC) + timedelta(minutes=self.magic_link_expire_minutes)

    def session_expiry(self) -> datetime:
        return datetime.now(UTC) + timedelta(minutes=self.session_expire_minutes)

    def create_magic_link_token(
        self,
        email: str,
        nonce: str,
        expires_at: datetime,
    ) -> str:
        """Create a signed token to embed in a sign-in link.

        :param email: The email the link was sent to
        :param nonce: Random nonce whose hash is stored server-side
        :param expires_at: When the link stops being valid
        :return: A JWT as a string
        """
        payload = {
            "sub": email,
            "nonce": nonce,
            "exp": expires_at,
            "iat": datetime.now(UTC),
            "type": _MAGIC_LINK_TOKEN,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_magic_link_token(self, token: str) -> tuple[str, str] | None:
        """Verify a sign-in link token.

        :param token: The JWT from the link
        :return: (email, nonce) if the token is valid, None otherwise
        """
        payload = self._decode(token, _MAGIC_LINK_TOKEN)
        if payload is None:
            return None

        email = payload.get("sub")
        nonce = payload.get("nonce")
        if not email or not nonce:
            return None
        return email, nonce

    def create_access_token(self, session: Session) -> str:
        """Create a session access token.

        :param session: The session to issue a token for
        :return: A JWT access token as a string
        """
        payload = {
            "sub": session.user_id,
            "email": session.email,
            "sid": session.session_id,
            "exp": session.expires_at,
            "iat": datetime.now(UTC),
            "type": _ACCESS_TOKEN,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_access_token(self, token: str) -> str | None:
        """Verify a session access token.

        :param token: The JWT token string to verify
        :return: The session id if the token is valid, None otherwise
        """
        payload = self._decode(token, _ACCESS_TOKEN)
        if payload is None:
            return None
        return payload.get("sid")

    def _decode(self, token: str, token_type: str) -> dict | None:
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
            )
        except jwt.ExpiredSignatureError:
            LOGGER.debug("Expired %s token", token_type)
            return None
        except jwt.InvalidTokenError:
            LOGGER.debug("Invalid %s token", token_type)
            return None

        if payload.get("type") != token_type:
            return None
        return payload
