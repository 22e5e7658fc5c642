"""Viewer and admin console state for the fund pages.

Both consoles own their group collection exclusively and replace it
wholesale on every load. Failures never propagate out of the consoles; they
become a Notice the user can read and retry from.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from hulugan.common import AuthError, HuluganError, LoadError, SaveError
from hulugan.metrics import compute_fund_stats, group_progress

from .gate import AuthorizationGate, GateState

if TYPE_CHECKING:
    from collections.abc import Callable

    from hulugan.common import Group, Session
    from hulugan.metrics import FundStats, GroupProgress

    from .protocols import GroupReader, IdentityProvider, RecordStore

LOGGER = logging.getLogger(__name__)

SENT_MESSAGE = "Sent! Check your email for the login link."
SAVED_MESSAGE = "Saved!"


@dataclass(frozen=True)
class Notice:
    """An inline message shown to the user.

    :param text: Message text
    :param error: The error behind the message, None for confirmations
    """

    text: str
    error: HuluganError | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


class FundViewer:
    """Public view of the fund: every group and the aggregate figures."""

    def __init__(self, store: GroupReader) -> None:
        self.store = store
        self.groups: list[Group] = []
        self.notice: Notice | None = None
        self.loading = False

    @property
    def stats(self) -> FundStats:
        return compute_fund_stats(self.groups)

    @property
    def progress(self) -> list[GroupProgress]:
        return [group_progress(group) for group in self.groups]

    async def load(self) -> bool:
        """Reload the group collection.

        :return: True if the collection was loaded
        """
        self.loading = True
        self.notice = None
        try:
            self.groups = await self.store.list_groups()
        except LoadError as e:
            self.groups = []
            self.notice = Notice(f"Load error: {e}", e)
            return False
        finally:
            self.loading = False
        return True


class AdminConsole:
    """Admin surface: sign-in, role gating and paid-weeks mutations."""

    def __init__(
        self,
        identity: IdentityProvider,
        store: RecordStore,
        gate: AuthorizationGate | None = None,
    ) -> None:
        """Create a console over an identity provider and a record store.

        :param identity: Source of sessions and auth state changes
        :param store: Record store for groups and role lookups
        :param gate: Authorization gate, one is created if not given
        """
        self.identity = identity
        self.store = store
        self.gate = gate or AuthorizationGate(store)

        self.groups: list[Group] = []
        self.notice: Notice | None = None
        self.loading = False
        self.sending = False
        self.saving_ids: set[str] = set()
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def session(self) -> Session | None:
        return self.gate.session

    @property
    def can_edit(self) -> bool:
        return self.gate.can_edit

    @property
    def stats(self) -> FundStats:
        return compute_fund_stats(self.groups)

    def is_editable(self, group_id: str) -> bool:
        """Whether the edit controls for a group should be enabled."""
        return self.can_edit and group_id not in self.saving_ids

    async def start(self) -> None:
        """Resolve the pre-existing session and follow auth state changes."""
        self._unsubscribe = self.identity.on_auth_state_change(
            self._on_auth_state_change,
        )
        try:
            session = await self.identity.get_session()
        except AuthError as e:
            self.notice = Notice(str(e), e)
            session = None
        await self._on_auth_state_change(session)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_auth_state_change(self, session: Session | None) -> None:
        state = await self.gate.resolve(session)

        if state is GateState.ANONYMOUS:
            self.groups = []
            self.notice = None
            self.saving_ids.clear()
        elif state is GateState.ADMIN:
            await self.load_groups()

    async def send_magic_link(self, email: str, redirect_to: str | None = None) -> bool:
        """Request a sign-in link for an email address.

        :return: True if the link was sent
        """
        self.sending = True
        self.notice = None
        try:
            await self.identity.send_magic_link(email, redirect_to)
        except AuthError as e:
            self.notice = Notice(str(e), e)
            return False
        finally:
            self.sending = False

        self.notice = Notice(SENT_MESSAGE)
        return True

    async def verify_magic_link(self, token: str) -> bool:
        """Complete sign-in with the token from a magic link.

        The resulting auth state change drives role resolution and loading.

        :return: True if a session was created
        """
        try:
            await self.identity.verify_magic_link(token)
        except AuthError as e:
            self.notice = Notice(str(e), e)
            return False
        return True

    async def sign_out(self) -> None:
        try:
            await self.identity.sign_out()
        except AuthError as e:
            LOGGER.warning("Sign out did not reach the server: %s", e)
            self.notice = Notice(str(e), e)

    async def load_groups(self) -> bool:
        """Reload the whole group collection.

        A response that arrives after the auth state changed is discarded.

        :return: True if the loaded collection was applied
        """
        generation = self.gate.generation
        self.loading = True
        self.notice = None
        try:
            groups = await self.store.list_groups()
        except LoadError as e:
            if self.gate.is_current(generation):
                self.groups = []
                self.notice = Notice(f"Load error: {e}", e)
            return False
        finally:
            self.loading = False

        if not self.gate.is_current(generation):
            LOGGER.debug("Discarding group load from a superseded auth state")
            return False

        self.groups = groups
        return True

    def _find_group(self, group_id: str) -> Group | None:
        return next((group for group in self.groups if group.id == group_id), None)

    def _refuse(self, text: str) -> bool:
        self.notice = Notice(f"Save failed: {text}", SaveError(text))
        return False

    async def set_paid_weeks(self, group_id: str, new_value: int) -> bool:
        """Write a group's paid weeks, then reload the collection.

        The displayed collection is never patched locally; on failure the
        group keeps its last loaded value.

        :param group_id: Id of a loaded group
        :param new_value: The new paid weeks count
        :return: True if the store accepted the write
        """
        if not self.can_edit:
            return self._refuse("editing requires the admin role")
        if group_id in self.saving_ids:
            return self._refuse("a save for this group is already in progress")
        if self._find_group(group_id) is None:
            return self._refuse(f"unknown group {group_id}")
        if isinstance(new_value, bool) or not isinstance(new_value, int):
            return self._refuse(f"paid weeks must be a whole number, got {new_value!r}")

        generation = self.gate.generation
        self.saving_ids.add(group_id)
        self.notice = None
        try:
            try:
                await self.store.update_paid_weeks(group_id, new_value)
            except SaveError as e:
                if self.gate.is_current(generation):
                    self.notice = Notice(f"Save failed: {e}", e)
                return False

            if not self.gate.is_current(generation):
                LOGGER.debug("Skipping reload after save from a superseded auth state")
                return True

            if await self.load_groups():
                self.notice = Notice(SAVED_MESSAGE)
            return True
        finally:
            self.saving_ids.discard(group_id)
