"""Fundamental user, role and session data models for the app."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum


class Role(StrEnum):
    """User roles stored in the role mapping."""

    ADMIN = "admin"
    VIEWER = "viewer"

    @classmethod
    def from_mapping(cls, value: str | None) -> Role:
        """Resolve a stored role value, defaulting to viewer.

        :param value: The role string from the role mapping, or None if unmapped
        :return: The matching Role, VIEWER for a missing or unknown value
        """
        if value == cls.ADMIN:
            return cls.ADMIN
        return cls.VIEWER


@dataclass
class User:
    """Data structure representing an identity known to the identity provider."""

    user_id: str
    email: str


@dataclass
class Session:
    """An authenticated session issued after magic-link verification."""

    session_id: str
    user_id: str
    email: str
    expires_at: datetime

    @property
    def expired(self) -> bool:
        return self.expires_at <= datetime.now(UTC)
