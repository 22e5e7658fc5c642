"""Tests for magic-link sign-in and the session lifecycle."""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from hulugan.auth import AuthQueries, IdentityService, SecurityManager, normalize_email
from hulugan.common import AuthError, MagicLinkError, Role, Session
from tests.conftest import ADMIN_EMAIL, VIEWER_EMAIL, CaptureLinkSender

REDIRECT = "http://localhost:3000/admin"


class FailingLinkSender:
    async def send(self, email: str, link: str) -> None:
        msg = "smtp down"
        raise ConnectionError(msg)


@pytest.fixture
def security_manager() -> SecurityManager:
    return SecurityManager(secret_key="s" * 40)


@pytest_asyncio.fixture
async def identity(
    auth_queries: AuthQueries,
    security_manager: SecurityManager,
    link_sender: CaptureLinkSender,
) -> IdentityService:
    return IdentityService(auth_queries, security_manager, link_sender, REDIRECT)


class TestNormalizeEmail:
    """Test suite for email normalization."""

    def test_trims_and_lowercases(self) -> None:
        assert normalize_email("  Admin@Example.COM ") == ADMIN_EMAIL

    @pytest.mark.parametrize("email", ["", "   ", "no-at-sign", "@example.com", "a@b", "a b@c.d"])
    def test_rejects_malformed(self, email: str) -> None:
        with pytest.raises(AuthError):
            normalize_email(email)


@pytest.mark.asyncio
class TestMagicLink:
    """Test suite for sending and verifying magic links."""

    async def test_send_then_verify_creates_session(
        self,
        identity: IdentityService,
        link_sender: CaptureLinkSender,
    ) -> None:
        link = await identity.send_magic_link(ADMIN_EMAIL)

        assert link.startswith(f"{REDIRECT}?token=")
        assert link_sender.sent == [(ADMIN_EMAIL, link)]

        session, access_token = await identity.verify_magic_link(
            link_sender.last_token(ADMIN_EMAIL),
        )

        assert session.email == ADMIN_EMAIL
        assert await identity.get_session(access_token) == session

    async def test_redirect_with_query_keeps_it(self, identity: IdentityService) -> None:
        link = await identity.send_magic_link(ADMIN_EMAIL, "http://app.test/admin?tab=groups")

        assert link.startswith("http://app.test/admin?tab=groups&token=")

    async def test_link_works_once(
        self,
        identity: IdentityService,
        link_sender: CaptureLinkSender,
    ) -> None:
        await identity.send_magic_link(ADMIN_EMAIL)
        token = link_sender.last_token(ADMIN_EMAIL)
        await identity.verify_magic_link(token)

        with pytest.raises(MagicLinkError):
            await identity.verify_magic_link(token)

    async def test_newer_link_supersedes_older(
        self,
        identity: IdentityService,
        link_sender: CaptureLinkSender,
    ) -> None:
        await identity.send_magic_link(ADMIN_EMAIL)
        old_token = link_sender.last_token(ADMIN_EMAIL)
        await identity.send_magic_link(ADMIN_EMAIL)
        new_token = link_sender.last_token(ADMIN_EMAIL)

        with pytest.raises(MagicLinkError):
            await identity.verify_magic_link(old_token)

        session, _ = await identity.verify_magic_link(new_token)
        assert session.email == ADMIN_EMAIL

    async def test_invalid_email_is_rejected(
        self,
        identity: IdentityService,
        link_sender: CaptureLinkSender,
    ) -> None:
        with pytest.raises(AuthError):
            await identity.send_magic_link("not an email")

        assert link_sender.sent == []

    async def test_delivery_failure_is_auth_error(
        self,
        auth_queries: AuthQueries,
        security_manager: SecurityManager,
    ) -> None:
        identity = IdentityService(
            auth_queries,
            security_manager,
            FailingLinkSender(),
            REDIRECT,
        )

        with pytest.raises(AuthError, match="Could not send"):
            await identity.send_magic_link(ADMIN_EMAIL)

    async def test_expired_token_is_rejected(
        self,
        auth_queries: AuthQueries,
        link_sender: CaptureLinkSender,
    ) -> None:
        manager = SecurityManager(secret_key="s" * 40, magic_link_expire_minutes=-1)
        identity = IdentityService(auth_queries, manager, link_sender, REDIRECT)
        await identity.send_magic_link(ADMIN_EMAIL)

        with pytest.raises(MagicLinkError):
            await identity.verify_magic_link(link_sender.last_token(ADMIN_EMAIL))

    async def test_expired_stored_link_is_rejected(
        self,
        identity: IdentityService,
        auth_queries: AuthQueries,
        link_sender: CaptureLinkSender,
    ) -> None:
        await identity.send_magic_link(ADMIN_EMAIL)
        stored = await auth_queries.get_magic_link(ADMIN_EMAIL)
        assert stored is not None
        await auth_queries.replace_magic_link(
            ADMIN_EMAIL,
            stored[0],
            datetime.now(UTC) - timedelta(minutes=1),
        )

        with pytest.raises(MagicLinkError, match="expired"):
            await identity.verify_magic_link(link_sender.last_token(ADMIN_EMAIL))

    async def test_garbage_token_is_rejected(self, identity: IdentityService) -> None:
        with pytest.raises(MagicLinkError):
            await identity.verify_magic_link("garbage")


@pytest.mark.asyncio
class TestSessions:
    """Test suite for session lookup, roles and sign-out."""

    async def _sign_in(
        self,
        identity: IdentityService,
        link_sender: CaptureLinkSender,
        email: str,
    ) -> tuple[Session, str]:
        await identity.send_magic_link(email)
        return await identity.verify_magic_link(link_sender.last_token(email))

    async def test_garbage_access_token_has_no_session(
        self,
        identity: IdentityService,
    ) -> None:
        assert await identity.get_session("garbage") is None

    async def test_sign_out_ends_session(
        self,
        identity: IdentityService,
        link_sender: CaptureLinkSender,
    ) -> None:
        session, access_token = await self._sign_in(identity, link_sender, ADMIN_EMAIL)

        await identity.sign_out(session)

        assert await identity.get_session(access_token) is None

    async def test_expired_session_is_removed(
        self,
        identity: IdentityService,
        auth_queries: AuthQueries,
        security_manager: SecurityManager,
    ) -> None:
        user = await auth_queries.get_or_create_user(ADMIN_EMAIL)
        session = await auth_queries.create_session(
            "sid-old",
            user,
            datetime.now(UTC) - timedelta(seconds=1),
        )
        # Signed with a future expiry so only the stored expiry is stale.
        token = security_manager.create_access_token(
            Session(
                session_id=session.session_id,
                user_id=session.user_id,
                email=session.email,
                expires_at=datetime.now(UTC) + timedelta(minutes=5),
            ),
        )

        assert await identity.get_session(token) is None
        assert await auth_queries.get_session("sid-old") is None

    async def test_new_identity_is_viewer(
        self,
        identity: IdentityService,
        link_sender: CaptureLinkSender,
    ) -> None:
        session, _ = await self._sign_in(identity, link_sender, VIEWER_EMAIL)

        assert await identity.role_for(session) is Role.VIEWER

    async def test_bootstrap_admins_grants_admin(
        self,
        identity: IdentityService,
        link_sender: CaptureLinkSender,
    ) -> None:
        await identity.bootstrap_admins([" Admin@Example.com "])
        session, _ = await self._sign_in(identity, link_sender, ADMIN_EMAIL)

        assert await identity.role_for(session) is Role.ADMIN

    async def test_role_change_is_seen_without_new_session(
        self,
        identity: IdentityService,
        auth_queries: AuthQueries,
        link_sender: CaptureLinkSender,
    ) -> None:
        session, _ = await self._sign_in(identity, link_sender, VIEWER_EMAIL)

        await auth_queries.set_role(session.user_id, Role.ADMIN)

        assert await identity.role_for(session) is Role.ADMIN
