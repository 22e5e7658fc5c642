"""Interfaces the client consoles depend on.

HuluganClient implements all of them over HTTP; tests substitute fakes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from hulugan.common import Group, Role, Session

    AuthStateListener = Callable[[Session | None], Awaitable[None]]


class GroupReader(Protocol):
    """Read access to the group collection."""

    async def list_groups(self) -> list[Group]:
        """Return every group, most recently updated first.

        :raises LoadError: If the read fails
        """
        ...


class RecordStore(GroupReader, Protocol):
    """Group reads and writes plus the role lookup."""

    async def update_paid_weeks(self, group_id: str, paid_weeks: int) -> None:
        """Write a group's paid weeks as the current session.

        :raises SaveError: If the store rejects or fails the write
        """
        ...

    async def get_role(self, session: Session) -> Role:
        """Look up the role for a session's user.

        :raises AuthError: If the lookup fails
        """
        ...


class IdentityProvider(Protocol):
    """Magic-link sign-in and session state."""

    async def get_session(self) -> Session | None: ...

    async def send_magic_link(self, email: str, redirect_to: str | None = None) -> None: ...

    async def verify_magic_link(self, token: str) -> Session: ...

    async def sign_out(self) -> None: ...

    def on_auth_state_change(self, listener: AuthStateListener) -> Callable[[], None]:
        """Register a listener called with the new session after every change.

        :return: A callable that unregisters the listener
        """
        ...
