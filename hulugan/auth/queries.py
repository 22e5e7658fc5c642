"""All queries related to identities, roles, magic links and sessions.

Using the AuthQueries class as a repository for
authentication-related queries.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from hulugan.common import Role, Session, User

if TYPE_CHECKING:
    from aiosqlite import Connection

LOGGER = logging.getLogger(__name__)


class AuthQueries:
    """Repository for authentication-related queries."""

    CREATE_USERS_TABLE = """
        CREATE TABLE IF NOT EXISTS users (
            user_id TEXT PRIMARY KEY,
            email TEXT NOT NULL UNIQUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        """

    CREATE_USER_ROLES_TABLE = """
        CREATE TABLE IF NOT EXISTS user_roles (
            user_id TEXT PRIMARY KEY,
            role TEXT NOT NULL CHECK (role IN ('admin', 'viewer')),
            FOREIGN KEY (user_id) REFERENCES users (user_id) ON DELETE CASCADE
        );
        """

    CREATE_MAGIC_LINKS_TABLE = """
        CREATE TABLE IF NOT EXISTS magic_links (
            email TEXT PRIMARY KEY,
            hashed_nonce BLOB NOT NULL,
            expires_at TEXT NOT NULL
        );
        """

    CREATE_SESSIONS_TABLE = """
        CREATE TABLE IF NOT EXISTS sessions (
            session_id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            expires_at TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (user_id) REFERENCES users (user_id) ON DELETE CASCADE
        );
        """

    GET_USER_BY_EMAIL = """
        SELECT user_id, email FROM users WHERE email = ?
        """

    ADD_USER = """
        INSERT OR IGNORE INTO users (user_id, email) VALUES (?, ?)
        """

    GET_ROLE = """
        SELECT role FROM user_roles WHERE user_id = ?
        """

    SET_ROLE = """
        INSERT INTO user_roles (user_id, role) VALUES (?, ?)
        ON CONFLICT (user_id) DO UPDATE SET role = excluded.role
        """

    REPLACE_MAGIC_LINK = """
        INSERT OR REPLACE INTO magic_links (email, hashed_nonce, expires_at)
        VALUES (?, ?, ?)
        """

    GET_MAGIC_LINK = """
        SELECT hashed_nonce, expires_at FROM magic_links WHERE email = ?
        """

    DELETE_MAGIC_LINK = """
        DELETE FROM magic_links WHERE email = ? AND hashed_nonce = ?
        """

    ADD_SESSION = """
        INSERT INTO sessions (session_id, user_id, expires_at) VALUES (?, ?, ?)
        """

    GET_SESSION = """
        SELECT sessions.session_id, sessions.user_id, users.email, sessions.expires_at
        FROM sessions JOIN users ON users.user_id = sessions.user_id
        WHERE sessions.session_id = ?
        """

    DELETE_SESSION = """
        DELETE FROM sessions WHERE session_id = ?
        """

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    async def initialize_tables(self) -> None:
        """Create users, user_roles, magic_links and sessions tables.

        This method should be called during application startup, before
        the group tables, since group writes authorize against user_roles.
        """
        try:
            await self.connection.execute(AuthQueries.CREATE_USERS_TABLE)
            await self.connection.execute(AuthQueries.CREATE_USER_ROLES_TABLE)
            await self.connection.execute(AuthQueries.CREATE_MAGIC_LINKS_TABLE)
            await self.connection.execute(AuthQueries.CREATE_SESSIONS_TABLE)
            await self.connection.commit()
        except Exception:
            await self.connection.rollback()
            LOGGER.exception("Error initializing auth tables")
            raise

    async def get_or_create_user(self, email: str) -> User:
        """Return the identity for an email, creating it on first sight.

        :param email: Normalized email address
        :return: The User for that email
        """
        await self.connection.execute(
            AuthQueries.ADD_USER,
            (uuid.uuid4().hex, email),
        )
        await self.connection.commit()

        async with self.connection.execute(
            AuthQueries.GET_USER_BY_EMAIL,
            (email,),
        ) as cursor:
            row = await cursor.fetchone()
        return User(user_id=row[0], email=row[1])

    async def get_role(self, user_id: str) -> Role:
        """Look up the role mapped to a user id.

        :param user_id: The user id to look up
        :return: The mapped role, VIEWER when there is no mapping
        """
        async with self.connection.execute(
            AuthQueries.GET_ROLE,
            (user_id,),
        ) as cursor:
            row = await cursor.fetchone()
        return Role.from_mapping(row[0] if row else None)

    async def set_role(self, user_id: str, role: Role) -> None:
        """Map a user id to a role, replacing any existing mapping.

        :param user_id: The user id to map
        :param role: The role to assign
        """
        await self.connection.execute(AuthQueries.SET_ROLE, (user_id, role.value))
        await self.connection.commit()

    async def replace_magic_link(
        self,
        email: str,
        hashed_nonce: bytes,
        expires_at: datetime,
    ) -> None:
        """Store the outstanding magic link for an email, replacing older ones."""
        await self.connection.execute(
            AuthQueries.REPLACE_MAGIC_LINK,
            (email, hashed_nonce, expires_at.isoformat()),
        )
        await self.connection.commit()

    async def get_magic_link(self, email: str) -> tuple[bytes, datetime] | None:
        """Return the hashed nonce and expiry of the outstanding link, if any."""
        async with self.connection.execute(
            AuthQueries.GET_MAGIC_LINK,
            (email,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return row[0], datetime.fromisoformat(row[1])

    async def delete_magic_link(self, email: str, hashed_nonce: bytes) -> int:
        """Consume a magic link.

        Only the link with the given hash is removed, so a newer link for the
        same email survives.

        :return: Number of rows deleted
        """
        cursor = await self.connection.execute(
            AuthQueries.DELETE_MAGIC_LINK,
            (email, hashed_nonce),
        )
        await self.connection.commit()
        return cursor.rowcount

    async def create_session(
        self,
        session_id: str,
        user: User,
        expires_at: datetime,
    ) -> Session:
        """Persist a new session for a user."""
        await self.connection.execute(
            AuthQueries.ADD_SESSION,
            (session_id, user.user_id, expires_at.isoformat()),
        )
        await self.connection.commit()
        return Session(
            session_id=session_id,
            user_id=user.user_id,
            email=user.email,
            expires_at=expires_at,
        )

    async def get_session(self, session_id: str) -> Session | None:
        """Return a stored session by id, expired or not."""
        async with self.connection.execute(
            AuthQueries.GET_SESSION,
            (session_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return Session(
            session_id=row[0],
            user_id=row[1],
            email=row[2],
            expires_at=datetime.fromisoformat(row[3]),
        )

    async def delete_session(self, session_id: str) -> int:
        """Delete a session.

        :return: Number of rows deleted
        """
        cursor = await self.connection.execute(
            AuthQueries.DELETE_SESSION,
            (session_id,),
        )
        await self.connection.commit()
        return cursor.rowcount
