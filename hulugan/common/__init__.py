"""Common data models and errors for the application."""

from .errors import (
    AuthError,
    GroupNotFoundError,
    HuluganError,
    InvalidGroupError,
    LoadError,
    MagicLinkError,
    PaidWeeksOutOfRangeError,
    PermissionDeniedError,
    SaveError,
    StoreError,
)
from .group import Group
from .user import Role, Session, User

__all__ = [
    "AuthError",
    "Group",
    "GroupNotFoundError",
    "HuluganError",
    "InvalidGroupError",
    "LoadError",
    "MagicLinkError",
    "PaidWeeksOutOfRangeError",
    "PermissionDeniedError",
    "Role",
    "SaveError",
    "Session",
    "StoreError",
    "User",
]
