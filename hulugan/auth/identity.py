"""Identity provider: magic-link sign-in and session lifecycle.

A sign-in link carries a signed token holding the email and a random nonce.
Only a bcrypt hash of the nonce is stored, and it is deleted on first use,
so each link works exactly once.
"""

from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from bcrypt import checkpw, gensalt, hashpw

from hulugan.common import AuthError, MagicLinkError, Role

if TYPE_CHECKING:
    from collections.abc import Iterable

    from hulugan.common import Session

    from .mailer import LinkSender
    from .queries import AuthQueries
    from .security_manager import SecurityManager

LOGGER = logging.getLogger(__name__)

_NONCE_BYTES = 32


def normalize_email(email: str) -> str:
    """Normalize an email address and check it looks deliverable.

    :param email: Raw email input
    :return: The trimmed, lower-cased address
    :raises AuthError: If the address is empty or malformed
    """
    email = email.strip().lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain or " " in email:
        msg = f"Invalid email address: {email!r}"
        raise AuthError(msg)
    return email


class IdentityService:
    """Issues sign-in links and manages sessions."""

    def __init__(
        self,
        auth_queries: AuthQueries,
        security_manager: SecurityManager,
        link_sender: LinkSender,
        default_redirect: str,
    ) -> None:
        """Create a new identity service.

        :param auth_queries: Database connector
        :param security_manager: Token signing configuration
        :param link_sender: Delivery mechanism for sign-in links
        :param default_redirect: URL links point at when none is requested
        """
        self.auth_queries = auth_queries
        self.security_manager = security_manager
        self.link_sender = link_sender
        self.default_redirect = default_redirect

    async def send_magic_link(self, email: str, redirect_to: str | None = None) -> str:
        """Send a one-time sign-in link to an email address.

        Any link previously sent to the same address stops working.

        :param email: Address to send the link to
        :param redirect_to: Surface the link should open, defaults to the admin page
        :return: The link that was sent
        :raises AuthError: If the address is invalid or delivery fails
        """
        email = normalize_email(email)
        await self.auth_queries.get_or_create_user(email)

        nonce = secrets.token_urlsafe(_NONCE_BYTES)
        expires_at = self.security_manager.magic_link_expiry()
        await self.auth_queries.replace_magic_link(
            email,
            hashpw(nonce.encode(), gensalt()),
            expires_at,
        )

        token = self.security_manager.create_magic_link_token(email, nonce, expires_at)
        target = redirect_to or self.default_redirect
        separator = "&" if "?" in target else "?"
        link = f"{target}{separator}{urlencode({'token': token})}"

        try:
            await self.link_sender.send(email, link)
        except Exception as e:
            LOGGER.exception("Failed to deliver magic link to %s", email)
            msg = f"Could not send sign-in link to {email}"
            raise AuthError(msg) from e

        LOGGER.debug("Magic link issued for %s", email)
        return link

    async def verify_magic_link(self, token: str) -> tuple[Session, str]:
        """Exchange a sign-in link token for a new session.

        :param token: The token from the sign-in link
        :return: The created session and its access token
        :raises MagicLinkError: If the token is invalid, expired or already used
        """
        claims = self.security_manager.verify_magic_link_token(token)
        if claims is None:
            msg = "Sign-in link is invalid or has expired"
            raise MagicLinkError(msg)
        email, nonce = claims

        stored = await self.auth_queries.get_magic_link(email)
        if stored is None:
            msg = "Sign-in link has already been used"
            raise MagicLinkError(msg)
        hashed_nonce, expires_at = stored

        if not checkpw(nonce.encode(), hashed_nonce):
            msg = "Sign-in link has been superseded by a newer one"
            raise MagicLinkError(msg)

        if not await self.auth_queries.delete_magic_link(email, hashed_nonce):
            msg = "Sign-in link has already been used"
            raise MagicLinkError(msg)

        if expires_at <= datetime.now(UTC):
            msg = "Sign-in link has expired"
            raise MagicLinkError(msg)

        user = await self.auth_queries.get_or_create_user(email)
        session = await self.auth_queries.create_session(
            secrets.token_urlsafe(_NONCE_BYTES),
            user,
            self.security_manager.session_expiry(),
        )
        LOGGER.info("Session %s started for %s", session.session_id, email)
        return session, self.security_manager.create_access_token(session)

    async def get_session(self, access_token: str) -> Session | None:
        """Resolve an access token to its live session.

        :param access_token: Bearer token issued by verify_magic_link
        :return: The session, or None if the token is invalid, expired or signed out
        """
        session_id = self.security_manager.verify_access_token(access_token)
        if session_id is None:
            return None

        session = await self.auth_queries.get_session(session_id)
        if session is None:
            return None

        if session.expired:
            await self.auth_queries.delete_session(session_id)
            LOGGER.debug("Session %s expired", session_id)
            return None
        return session

    async def sign_out(self, session: Session) -> None:
        """End a session so its access token stops working."""
        await self.auth_queries.delete_session(session.session_id)
        LOGGER.info("Session %s signed out", session.session_id)

    async def role_for(self, session: Session) -> Role:
        """Look up the current role for a session's user."""
        return await self.auth_queries.get_role(session.user_id)

    async def bootstrap_admins(self, emails: Iterable[str]) -> None:
        """Ensure every listed email exists and holds the admin role.

        :param emails: Addresses to grant admin to
        """
        for raw_email in emails:
            email = normalize_email(raw_email)
            user = await self.auth_queries.get_or_create_user(email)
            await self.auth_queries.set_role(user.user_id, Role.ADMIN)
            LOGGER.info("Granted admin role to %s", email)
