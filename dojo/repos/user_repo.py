"""Repository for user profiles and role assignments."""

from __future__ import annotations

from typing import Any
from uuid import UUID

import asyncpg

from dojo.db import actor_conn, db_errors, system_conn
from dojo.models.user import UserProfileRow, UserProfileWrite
from dojo.repos.base import insert_clause, set_clause, validate_write
from katalog.errors import NotFound, ValidationError
from katalog.gateway import RecordGateway, RoleGateway
from katalog.types import UserProfile, UserRole

_SELECT_PROFILES = """
    SELECT p.id, p.email, p.full_name, p.created_at, r.role
    FROM user_profiles p
    LEFT JOIN user_roles r ON r.user_id = p.id
"""


def _row_to_profile(row: asyncpg.Record) -> UserProfile:
    """Convert a joined profile/role row to a UserProfile."""
    return UserProfileRow.model_validate(dict(row)).to_entity()


def _uuid(user_id: str | UUID) -> UUID:
    try:
        return user_id if isinstance(user_id, UUID) else UUID(str(user_id))
    except ValueError as e:
        raise ValidationError(f"Not a user id: {user_id}") from e


class UserRepo(RecordGateway[UserProfile], RoleGateway):
    """User profiles plus the role table the moderation rules read."""

    async def list(self) -> list[UserProfile]:
        with db_errors("load users"):
            async with system_conn() as conn:
                rows = await conn.fetch(_SELECT_PROFILES + " ORDER BY p.full_name, p.email")
                return [_row_to_profile(row) for row in rows]

    async def get(self, user_id: str | UUID) -> UserProfile | None:
        """
        Get a profile by id.

        Args:
            user_id: User UUID

        Returns:
            UserProfile if found, None otherwise
        """
        with db_errors("load user"):
            async with system_conn() as conn:
                row = await conn.fetchrow(_SELECT_PROFILES + " WHERE p.id = $1", _uuid(user_id))
                return _row_to_profile(row) if row else None

    async def create(self, fields: dict[str, Any]) -> UserProfile:
        """
        Create a profile for an account that signed up through the auth service.

        Args:
            fields: id (the auth user id), email, full_name
        """
        columns = validate_write(UserProfileWrite, fields).columns()
        if not columns.get("id") or not columns.get("email"):
            raise ValidationError("A profile needs the auth user id and an email")

        names, placeholders = insert_clause(columns)
        with db_errors("create user"):
            async with system_conn() as conn:
                await conn.execute(
                    f"INSERT INTO user_profiles ({names}) VALUES ({placeholders})",  # nosec B608
                    *columns.values(),
                )
                row = await conn.fetchrow(_SELECT_PROFILES + " WHERE p.id = $1", columns["id"])
                return _row_to_profile(row)

    async def update(self, user_id: str | UUID, fields: dict[str, Any]) -> UserProfile:
        columns = validate_write(UserProfileWrite, fields).columns()
        columns.pop("id", None)
        uid = _uuid(user_id)
        with db_errors("update user"):
            async with system_conn() as conn:
                if columns:
                    await conn.execute(
                        f"UPDATE user_profiles SET {set_clause(columns)} WHERE id = $1",  # nosec B608
                        uid,
                        *columns.values(),
                    )
                row = await conn.fetchrow(_SELECT_PROFILES + " WHERE p.id = $1", uid)
        if row is None:
            raise NotFound(f"User {user_id} not found")
        return _row_to_profile(row)

    async def delete(self, user_id: str | UUID) -> None:
        with db_errors("delete user"):
            async with system_conn() as conn:
                result = await conn.execute("DELETE FROM user_profiles WHERE id = $1", _uuid(user_id))
        if result != "DELETE 1":
            raise NotFound(f"User {user_id} not found")

    # -- roles --

    async def get_role(self, user_id: str) -> UserRole:
        """
        Look up a user's role. Users without an assignment are ordinary users.

        Args:
            user_id: User UUID

        Returns:
            The assigned UserRole
        """
        with db_errors("load role"):
            async with system_conn() as conn:
                role = await conn.fetchval("SELECT role FROM user_roles WHERE user_id = $1", _uuid(user_id))
                return UserRole.parse(role)

    async def set_role(self, user_id: str, role: UserRole, granted_by: str) -> None:
        """
        Assign a role, replacing any previous assignment.

        Args:
            user_id: User receiving the role
            role: New role
            granted_by: Administrator making the change
        """
        with db_errors("assign role"):
            async with actor_conn(granted_by) as conn:
                await conn.execute(
                    """
                    INSERT INTO user_roles (user_id, role, granted_by)
                    VALUES ($1, $2, $3)
                    ON CONFLICT (user_id)
                    DO UPDATE SET role = EXCLUDED.role, granted_by = EXCLUDED.granted_by, granted_at = now()
                    """,
                    _uuid(user_id),
                    role.value,
                    _uuid(granted_by),
                )
