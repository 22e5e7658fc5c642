"""Models for auth-related requests and responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from hulugan.common import Role, Session


class MagicLinkRequest(BaseModel):
    """Request body for sending a sign-in link.

    :param email: Address to send the link to
    :param redirect_to: Surface the link should open, defaults to the admin page
    """

    email: str
    redirect_to: str | None = None


class VerifyRequest(BaseModel):
    """Request body for exchanging a sign-in link token for a session."""

    token: str


class SessionResponse(BaseModel):
    """Data structure representing an active session.

    :param session_id: Id of the session
    :param user_id: Identity the session belongs to
    :param email: Email address of that identity
    :param expires_at: When the session stops being valid
    """

    session_id: str
    user_id: str
    email: str
    expires_at: datetime

    @classmethod
    def from_session(cls, session: Session) -> SessionResponse:
        return cls(
            session_id=session.session_id,
            user_id=session.user_id,
            email=session.email,
            expires_at=session.expires_at,
        )


class LoginResponse(BaseModel):
    """Response model for a verified sign-in link.

    :param access_token: The session access token
    :param session: The created session
    """

    access_token: str
    token_type: str = "bearer"
    session: SessionResponse


class RoleResponse(BaseModel):
    role: Role


class MessageResponse(BaseModel):
    message: str
