"""Authentication routes for the FastAPI application.

Provides endpoints for sending and verifying magic links, inspecting the
current session and its role, and signing out.
"""

import logging
from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from hulugan.common import AuthError, MagicLinkError, Session

from .models import (
    LoginResponse,
    MagicLinkRequest,
    MessageResponse,
    RoleResponse,
    SessionResponse,
    VerifyRequest,
)
from .validation import Validate

if TYPE_CHECKING:
    from .identity import IdentityService

LOGGER = logging.getLogger(__name__)


async def _send_magic_link(
    identity: "IdentityService",
    request: MagicLinkRequest,
) -> MessageResponse:
    try:
        await identity.send_magic_link(request.email, request.redirect_to)
    except AuthError as e:
        LOGGER.info("Magic link request rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    return MessageResponse(message="Sent! Check your email for the login link.")


async def _verify(identity: "IdentityService", request: VerifyRequest) -> LoginResponse:
    try:
        session, access_token = await identity.verify_magic_link(request.token)
    except MagicLinkError as e:
        LOGGER.info("Magic link verification failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        ) from e

    return LoginResponse(
        access_token=access_token,
        session=SessionResponse.from_session(session),
    )


def configure_auth_router(
    router: APIRouter,
    identity: "IdentityService",
    validate: Validate,
) -> APIRouter:
    """Configure the authentication router.

    :param router: The APIRouter to configure
    :param identity: The IdentityService issuing links and sessions
    :param validate: The Validate instance resolving sessions
    :return: The configured APIRouter
    """

    @router.post("/magic-link", response_model=MessageResponse)
    async def send_magic_link(request: MagicLinkRequest) -> MessageResponse:
        return await _send_magic_link(identity, request)

    @router.post("/verify", response_model=LoginResponse)
    async def verify(request: VerifyRequest) -> LoginResponse:
        return await _verify(identity, request)

    @router.get("/session", response_model=SessionResponse)
    def get_session(
        session: Annotated[Session, Depends(validate.session)],
    ) -> SessionResponse:
        return SessionResponse.from_session(session)

    @router.get("/role", response_model=RoleResponse)
    async def get_role(
        session: Annotated[Session, Depends(validate.session)],
    ) -> RoleResponse:
        return RoleResponse(role=await identity.role_for(session))

    @router.post("/logout", response_model=MessageResponse)
    async def logout(
        session: Annotated[Session, Depends(validate.session)],
    ) -> MessageResponse:
        await identity.sign_out(session)
        return MessageResponse(message="Signed out")

    return router
