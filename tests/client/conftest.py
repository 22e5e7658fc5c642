"""In-memory identity provider and record store for client tests."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from hulugan.common import AuthError, Group, LoadError, Role, SaveError, Session

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

ADMIN_EMAIL = "admin@example.com"
VIEWER_EMAIL = "viewer@example.com"


class FakeBackend:
    """Identity provider and record store backed by plain dicts.

    Writes are checked against the role mapping here, the way the real store
    checks them, regardless of what the client gate decided.
    """

    def __init__(self) -> None:
        self.groups: dict[str, Group] = {}
        self.roles: dict[str, Role] = {}
        self.current: Session | None = None
        self.listeners: list[Callable[[Session | None], Awaitable[None]]] = []
        self.load_error: LoadError | None = None
        self.role_error: AuthError | None = None
        self.load_gate: asyncio.Event | None = None
        self.update_gate: asyncio.Event | None = None
        self.role_gate: asyncio.Event | None = None
        self.update_calls: list[tuple[str, int]] = []
        self._clock = 0

    def add_group(
        self,
        group_id: str,
        *,
        weekly_amount: object = 10,
        weeks_total: object = 4,
        paid_weeks: object = 0,
    ) -> Group:
        self._clock += 1
        group = Group(
            id=group_id,
            name=f"Group {group_id}",
            weekly_amount=weekly_amount,
            weeks_total=weeks_total,
            paid_weeks=paid_weeks,
            updated_at=f"2026-01-01T00:00:{self._clock:02d}+00:00",
        )
        self.groups[group_id] = group
        return group

    def make_session(self, email: str, role: Role | None = None) -> Session:
        user_id = f"user-{email}"
        if role is not None:
            self.roles[user_id] = role
        return Session(
            session_id=f"sid-{email}",
            user_id=user_id,
            email=email,
            expires_at=datetime.now(UTC) + timedelta(hours=1),
        )

    async def emit(self, session: Session | None) -> None:
        self.current = session
        for listener in list(self.listeners):
            await listener(session)

    # IdentityProvider

    async def get_session(self) -> Session | None:
        return self.current

    async def send_magic_link(self, email: str, redirect_to: str | None = None) -> None:
        if "@" not in email:
            msg = f"Invalid email address: {email!r}"
            raise AuthError(msg)

    async def verify_magic_link(self, token: str) -> Session:
        if token == "bad":  # noqa: S105
            msg = "Sign-in link is invalid or has expired"
            raise AuthError(msg)
        session = self.make_session(token)
        await self.emit(session)
        return session

    async def sign_out(self) -> None:
        await self.emit(None)

    def on_auth_state_change(
        self,
        listener: Callable[[Session | None], Awaitable[None]],
    ) -> Callable[[], None]:
        self.listeners.append(listener)
        return lambda: self.listeners.remove(listener)

    # RecordStore

    async def get_role(self, session: Session) -> Role:
        if self.role_gate is not None:
            await self.role_gate.wait()
        if self.role_error is not None:
            raise self.role_error
        return self.roles.get(session.user_id, Role.VIEWER)

    async def list_groups(self) -> list[Group]:
        if self.load_gate is not None:
            await self.load_gate.wait()
        if self.load_error is not None:
            raise self.load_error
        return sorted(self.groups.values(), key=lambda g: g.updated_at, reverse=True)

    async def update_paid_weeks(self, group_id: str, paid_weeks: int) -> None:
        self.update_calls.append((group_id, paid_weeks))
        # The credentials travel with the request, as they do over HTTP.
        session = self.current
        if self.update_gate is not None:
            await self.update_gate.wait()

        if session is None or self.roles.get(session.user_id) is not Role.ADMIN:
            msg = "Only admins can update paid weeks"
            raise SaveError(msg)
        group = self.groups.get(group_id)
        if group is None:
            msg = f"Group {group_id} does not exist"
            raise SaveError(msg)
        if not 0 <= paid_weeks <= group.weeks_total:
            msg = f"paid_weeks must be between 0 and {group.weeks_total}"
            raise SaveError(msg)

        self._clock += 1
        self.groups[group_id] = replace(
            group,
            paid_weeks=paid_weeks,
            updated_at=f"2026-01-01T00:00:{self._clock:02d}+00:00",
        )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()
