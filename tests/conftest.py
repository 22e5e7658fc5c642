"""Shared fixtures: a temporary database with auth and group tables."""

from collections.abc import AsyncGenerator
from pathlib import Path
from urllib.parse import parse_qs, urlparse

import aiosqlite
import pytest
import pytest_asyncio

from hulugan.auth import AuthQueries
from hulugan.common import Role, User
from hulugan.store import GroupQueries

ADMIN_EMAIL = "admin@example.com"
VIEWER_EMAIL = "viewer@example.com"


class CaptureLinkSender:
    """Link sender that records links instead of delivering them."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def send(self, email: str, link: str) -> None:
        self.sent.append((email, link))

    def last_token(self, email: str) -> str:
        """Return the token from the most recent link sent to an email."""
        link = next(link for to, link in reversed(self.sent) if to == email)
        return parse_qs(urlparse(link).query)["token"][0]


@pytest.fixture
def link_sender() -> CaptureLinkSender:
    return CaptureLinkSender()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest_asyncio.fixture
async def db_connection(db_path: Path) -> AsyncGenerator[aiosqlite.Connection]:
    async with aiosqlite.connect(db_path) as connection:
        yield connection


@pytest_asyncio.fixture
async def auth_queries(db_connection: aiosqlite.Connection) -> AuthQueries:
    queries = AuthQueries(db_connection)
    await queries.initialize_tables()
    return queries


@pytest_asyncio.fixture
async def group_queries(
    db_connection: aiosqlite.Connection,
    auth_queries: AuthQueries,  # noqa: ARG001
) -> GroupQueries:
    queries = GroupQueries(db_connection)
    await queries.initialize_tables()
    return queries


@pytest_asyncio.fixture
async def admin_user(auth_queries: AuthQueries) -> User:
    user = await auth_queries.get_or_create_user(ADMIN_EMAIL)
    await auth_queries.set_role(user.user_id, Role.ADMIN)
    return user


@pytest_asyncio.fixture
async def viewer_user(auth_queries: AuthQueries) -> User:
    """A signed-up user with no role mapping at all."""
    return await auth_queries.get_or_create_user(VIEWER_EMAIL)
