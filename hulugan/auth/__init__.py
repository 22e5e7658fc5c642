"""All authentication-related modules and routes."""

from .auth_routes import configure_auth_router
from .identity import IdentityService, normalize_email
from .mailer import LinkSender, LoggingLinkSender
from .queries import AuthQueries
from .security_manager import SecurityManager
from .validation import Validate

__all__ = [
    "AuthQueries",
    "IdentityService",
    "LinkSender",
    "LoggingLinkSender",
    "SecurityManager",
    "Validate",
    "configure_auth_router",
    "normalize_email",
]
