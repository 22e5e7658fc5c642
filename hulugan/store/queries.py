"""All queries against the group collection.

The GroupQueries class is the record store: every write checks the actor's
role inside the same SQL statement that performs it, so a non-admin write is
refused here no matter what the caller checked beforehand.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from hulugan.common import (
    Group,
    GroupNotFoundError,
    InvalidGroupError,
    PaidWeeksOutOfRangeError,
    PermissionDeniedError,
    Role,
)

if TYPE_CHECKING:
    from aiosqlite import Connection

LOGGER = logging.getLogger(__name__)

# Largest value SQLite can bind as an INTEGER
MAX_SQLITE_INTEGER = 2**63 - 1


def _timestamp() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds")


class GroupQueries:
    """Repository for group records."""

    CREATE_GROUPS_TABLE = """
        CREATE TABLE IF NOT EXISTS groups (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            weekly_amount NUMERIC NOT NULL CHECK (weekly_amount >= 0),
            weeks_total INTEGER NOT NULL CHECK (weeks_total > 0),
            paid_weeks INTEGER NOT NULL DEFAULT 0,
            updated_at TEXT NOT NULL,
            CHECK (paid_weeks >= 0 AND paid_weeks <= weeks_total)
        );
        """

    LIST_GROUPS = """
        SELECT id, name, weekly_amount, weeks_total, paid_weeks, updated_at
        FROM groups ORDER BY updated_at DESC
        """

    GET_GROUP = """
        SELECT id, name, weekly_amount, weeks_total, paid_weeks, updated_at
        FROM groups WHERE id = ?
        """

    IS_ADMIN = """
        SELECT 1 FROM user_roles WHERE user_id = ? AND role = ?
        """

    UPDATE_PAID_WEEKS = """
        UPDATE groups SET paid_weeks = ?, updated_at = ?
        WHERE id = ?
            AND ? BETWEEN 0 AND weeks_total
            AND EXISTS (SELECT 1 FROM user_roles WHERE user_id = ? AND role = ?)
        """

    ADD_GROUP = """
        INSERT INTO groups (id, name, weekly_amount, weeks_total, paid_weeks, updated_at)
        SELECT ?, ?, ?, ?, ?, ?
        WHERE EXISTS (SELECT 1 FROM user_roles WHERE user_id = ? AND role = ?)
        """

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    async def initialize_tables(self) -> None:
        """Create the groups table if it does not exist.

        The user_roles table it authorizes against is created by AuthQueries.
        """
        await self.connection.execute(GroupQueries.CREATE_GROUPS_TABLE)
        await self.connection.commit()

    async def list_groups(self) -> list[Group]:
        """Return every group, most recently updated first.

        :return: The full group collection
        """
        async with self.connection.execute(GroupQueries.LIST_GROUPS) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_group(row) for row in rows]

    async def get_group(self, group_id: str) -> Group | None:
        """Return a single group by id.

        :param group_id: The group id to look up
        :return: The group, or None if no such group exists
        """
        async with self.connection.execute(
            GroupQueries.GET_GROUP,
            (group_id,),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_group(row) if row else None

    async def _is_admin(self, user_id: str) -> bool:
        async with self.connection.execute(
            GroupQueries.IS_ADMIN,
            (user_id, Role.ADMIN.value),
        ) as cursor:
            return await cursor.fetchone() is not None

    async def update_paid_weeks(
        self,
        actor_user_id: str,
        group_id: str,
        paid_weeks: int,
    ) -> Group:
        """Set a group's paid weeks on behalf of an identity.

        The write only happens when the actor holds the admin role and the
        value lies within [0, weeks_total]. The store stamps updated_at.

        :param actor_user_id: User id of the identity performing the write
        :param group_id: Id of the group to update
        :param paid_weeks: The new paid weeks count
        :return: The updated group
        :raises PermissionDeniedError: If the actor is not an admin
        :raises GroupNotFoundError: If no group has the given id
        :raises PaidWeeksOutOfRangeError: If the value is not an integer in range
        """
        if isinstance(paid_weeks, bool) or not isinstance(paid_weeks, int):
            msg = f"paid_weeks must be an integer, got: {paid_weeks!r}"
            raise PaidWeeksOutOfRangeError(msg)
        if abs(paid_weeks) > MAX_SQLITE_INTEGER:
            msg = f"paid_weeks is too large to store, got: {paid_weeks}"
            raise PaidWeeksOutOfRangeError(msg)

        cursor = await self.connection.execute(
            GroupQueries.UPDATE_PAID_WEEKS,
            (
                paid_weeks,
                _timestamp(),
                group_id,
                paid_weeks,
                actor_user_id,
                Role.ADMIN.value,
            ),
        )

        if cursor.rowcount == 1:
            await self.connection.commit()
            LOGGER.info(
                "Group %s paid_weeks set to %s by %s",
                group_id,
                paid_weeks,
                actor_user_id,
            )
            group = await self.get_group(group_id)
            if group is None:
                msg = f"Group {group_id} vanished after update"
                raise GroupNotFoundError(msg)
            return group

        await self.connection.rollback()

        if not await self._is_admin(actor_user_id):
            LOGGER.warning(
                "Rejected paid_weeks write to %s by non-admin %s",
                group_id,
                actor_user_id,
            )
            msg = "Only admins can update paid weeks"
            raise PermissionDeniedError(msg)

        group = await self.get_group(group_id)
        if group is None:
            msg = f"Group {group_id} does not exist"
            raise GroupNotFoundError(msg)

        msg = f"paid_weeks must be between 0 and {group.weeks_total}, got: {paid_weeks}"
        raise PaidWeeksOutOfRangeError(msg)

    async def create_group(  # noqa: PLR0913
        self,
        actor_user_id: str,
        name: str,
        weekly_amount: Decimal,
        weeks_total: int,
        paid_weeks: int = 0,
    ) -> Group:
        """Create a new group on behalf of an admin identity.

        :param actor_user_id: User id of the identity performing the write
        :param name: Display label
        :param weekly_amount: Non-negative weekly contribution
        :param weeks_total: Positive number of weeks in the cycle
        :param paid_weeks: Initial paid weeks, within [0, weeks_total]
        :return: The created group
        :raises InvalidGroupError: If any field is out of range
        :raises PermissionDeniedError: If the actor is not an admin
        """
        name = name.strip()
        if not name:
            msg = "Group name must not be empty"
            raise InvalidGroupError(msg)
        if weekly_amount < 0:
            msg = "weekly_amount must not be negative"
            raise InvalidGroupError(msg)
        if not 0 < weeks_total <= MAX_SQLITE_INTEGER:
            msg = f"weeks_total must be positive and at most {MAX_SQLITE_INTEGER}"
            raise InvalidGroupError(msg)
        if not 0 <= paid_weeks <= weeks_total:
            msg = f"paid_weeks must be between 0 and {weeks_total}, got: {paid_weeks}"
            raise PaidWeeksOutOfRangeError(msg)

        group_id = uuid.uuid4().hex
        cursor = await self.connection.execute(
            GroupQueries.ADD_GROUP,
            (
                group_id,
                name,
                str(Decimal(weekly_amount)),
                weeks_total,
                paid_weeks,
                _timestamp(),
                actor_user_id,
                Role.ADMIN.value,
            ),
        )

        if cursor.rowcount != 1:
            await self.connection.rollback()
            LOGGER.warning("Rejected group creation by non-admin %s", actor_user_id)
            msg = "Only admins can create groups"
            raise PermissionDeniedError(msg)

        await self.connection.commit()
        LOGGER.info("Group %s (%s) created by %s", group_id, name, actor_user_id)

        group = await self.get_group(group_id)
        if group is None:
            msg = f"Group {group_id} vanished after insert"
            raise GroupNotFoundError(msg)
        return group


def _row_to_group(row: tuple) -> Group:
    group_id, name, weekly_amount, weeks_total, paid_weeks, updated_at = row
    return Group(
        id=group_id,
        name=name,
        weekly_amount=weekly_amount,
        weeks_total=weeks_total,
        paid_weeks=paid_weeks,
        updated_at=updated_at,
    )
