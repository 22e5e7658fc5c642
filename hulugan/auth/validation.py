"""FastAPI dependency validators for authentication."""

import logging
from typing import TYPE_CHECKING

from fastapi import HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from hulugan.common import Session

if TYPE_CHECKING:
    from .identity import IdentityService

bearer_scheme = HTTPBearer(auto_error=False)

LOGGER = logging.getLogger(__name__)


class Validate:
    """Holds validator dependencies for FastAPI authentication.

    Only the session is resolved here. Roles are looked up by whoever needs
    them at the moment they need them, and writes are authorized by the
    record store itself.
    """

    def __init__(self, identity: "IdentityService") -> None:
        """Create a new validator instance.

        :param identity: Identity service resolving access tokens
        """
        self.identity = identity

    async def optional_session(
        self,
        credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
    ) -> Session | None:
        """Resolve the bearer token to a session, or None when absent or invalid."""
        if credentials is None:
            return None
        return await self.identity.get_session(credentials.credentials)

    async def session(
        self,
        credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
    ) -> Session:
        """Resolve the bearer token to a session, rejecting the request otherwise."""
        session = await self.optional_session(credentials)

        if session is None:
            LOGGER.debug("Session validation failed")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not signed in",
                headers={"WWW-Authenticate": "Bearer"},
            )

        LOGGER.debug("Session validated for user: %s", session.email)
        return session
