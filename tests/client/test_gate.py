"""Tests for the client-side authorization gate."""

import asyncio

import pytest

from hulugan.client import AuthorizationGate, GateState
from hulugan.common import AuthError, Role
from tests.client.conftest import ADMIN_EMAIL, VIEWER_EMAIL, FakeBackend


@pytest.mark.asyncio
class TestAuthorizationGate:
    """Test suite for AuthorizationGate."""

    async def test_starts_anonymous(self, backend: FakeBackend) -> None:
        gate = AuthorizationGate(backend)

        assert gate.state is GateState.ANONYMOUS
        assert not gate.can_edit

    async def test_no_session_is_anonymous(self, backend: FakeBackend) -> None:
        gate = AuthorizationGate(backend)

        assert await gate.resolve(None) is GateState.ANONYMOUS
        assert gate.session is None

    async def test_admin_mapping_is_admin(self, backend: FakeBackend) -> None:
        gate = AuthorizationGate(backend)
        session = backend.make_session(ADMIN_EMAIL, Role.ADMIN)

        assert await gate.resolve(session) is GateState.ADMIN
        assert gate.can_edit
        assert gate.session == session

    @pytest.mark.parametrize("role", [None, Role.VIEWER])
    async def test_non_admin_is_viewer(self, backend: FakeBackend, role: Role | None) -> None:
        gate = AuthorizationGate(backend)

        state = await gate.resolve(backend.make_session(VIEWER_EMAIL, role))

        assert state is GateState.VIEWER
        assert not gate.can_edit

    async def test_failed_lookup_is_viewer(self, backend: FakeBackend) -> None:
        gate = AuthorizationGate(backend)
        backend.role_error = AuthError("lookup failed")

        state = await gate.resolve(backend.make_session(ADMIN_EMAIL, Role.ADMIN))

        assert state is GateState.VIEWER

    async def test_sign_out_drops_admin(self, backend: FakeBackend) -> None:
        gate = AuthorizationGate(backend)
        await gate.resolve(backend.make_session(ADMIN_EMAIL, Role.ADMIN))

        assert await gate.resolve(None) is GateState.ANONYMOUS
        assert not gate.can_edit

    async def test_role_is_looked_up_on_every_resolution(self, backend: FakeBackend) -> None:
        gate = AuthorizationGate(backend)
        session = backend.make_session(ADMIN_EMAIL, Role.ADMIN)
        await gate.resolve(session)

        backend.roles[session.user_id] = Role.VIEWER

        assert await gate.resolve(session) is GateState.VIEWER

    async def test_superseded_resolution_is_discarded(self, backend: FakeBackend) -> None:
        gate = AuthorizationGate(backend)
        backend.role_gate = asyncio.Event()

        pending = asyncio.create_task(
            gate.resolve(backend.make_session(ADMIN_EMAIL, Role.ADMIN)),
        )
        await asyncio.sleep(0)
        assert await gate.resolve(None) is GateState.ANONYMOUS

        backend.role_gate.set()

        assert await pending is GateState.ANONYMOUS
        assert gate.state is GateState.ANONYMOUS
        assert gate.session is None

    async def test_generation_advances(self, backend: FakeBackend) -> None:
        gate = AuthorizationGate(backend)
        before = gate.generation

        await gate.resolve(None)

        assert not gate.is_current(before)
        assert gate.is_current(gate.generation)
