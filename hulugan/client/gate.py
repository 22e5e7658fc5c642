"""Client-side authorization gate.

The gate decides what the admin console offers the user. It is a UX
affordance only: the record store refuses non-admin writes on its own.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from hulugan.common import HuluganError, Role

if TYPE_CHECKING:
    from hulugan.common import Session

    from .protocols import RecordStore

LOGGER = logging.getLogger(__name__)


class GateState(Enum):
    """Authorization states of a client."""

    ANONYMOUS = "anonymous"
    VIEWER = "authenticated-viewer"
    ADMIN = "authenticated-admin"


class AuthorizationGate:
    """Resolves a session to a gate state through a fresh role lookup.

    Every resolution bumps ``generation``. Work started under an older
    generation must not apply its results once a newer resolution began.
    """

    def __init__(self, store: RecordStore) -> None:
        self.store = store
        self.state = GateState.ANONYMOUS
        self.session: Session | None = None
        self.generation = 0

    @property
    def can_edit(self) -> bool:
        return self.session is not None and self.state is GateState.ADMIN

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    async def resolve(self, session: Session | None) -> GateState:
        """Re-run the whole role resolution for a new authentication state.

        A failed or missing role lookup resolves to VIEWER. If another
        resolution starts while this one awaits the lookup, this one is
        dropped and the newer state is returned.

        :param session: The new session, or None after sign-out
        :return: The gate state now in effect
        """
        self.generation += 1
        generation = self.generation

        if session is None:
            self._apply(None, GateState.ANONYMOUS)
            return self.state

        try:
            role = await self.store.get_role(session)
        except HuluganError as e:
            LOGGER.warning("Role lookup failed for %s, treating as viewer: %s", session.email, e)
            role = Role.VIEWER

        if not self.is_current(generation):
            LOGGER.debug("Discarding superseded role resolution for %s", session.email)
            return self.state

        self._apply(session, GateState.ADMIN if role is Role.ADMIN else GateState.VIEWER)
        return self.state

    def _apply(self, session: Session | None, state: GateState) -> None:
        self.session = session
        self.state = state
        LOGGER.debug("Authorization state is now %s", state.value)
