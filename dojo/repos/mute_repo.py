"""Repository for user mutes."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

import asyncpg

from dojo.db import actor_conn, db_errors, system_conn
from dojo.models.mute import MuteRow
from katalog.gateway import MuteGateway
from katalog.moderation import MuteRecord


def _row_to_mute(row: asyncpg.Record) -> MuteRecord:
    return MuteRow.model_validate(dict(row)).to_record()


class MuteRepo(MuteGateway):
    """All mute-related database operations. Expiry is judged by the caller's clock."""

    async def insert(self, record: MuteRecord) -> MuteRecord:
        """
        Store a new mute.

        Args:
            record: Mute to store; its id is assigned by the database

        Returns:
            The stored MuteRecord
        """
        with db_errors("mute user"):
            async with actor_conn(record.muted_by or record.user_id) as conn:
                row = await conn.fetchrow(
                    """
                    INSERT INTO user_mutes (user_id, muted_until, reason, muted_at, is_active, muted_by)
                    VALUES ($1, $2, $3, $4, $5, $6)
                    RETURNING *
                    """,
                    UUID(record.user_id),
                    record.muted_until,
                    record.reason,
                    record.muted_at,
                    record.active,
                    UUID(record.muted_by) if record.muted_by else None,
                )
                return _row_to_mute(row)

    async def deactivate_active(self, user_id: str, at: datetime, by: str | None) -> int:
        """
        Close every active mute of a user.

        Returns:
            Number of mutes that were active
        """
        with db_errors("unmute user"):
            async with system_conn() as conn:
                result = await conn.execute(
                    """
                    UPDATE user_mutes
                    SET is_active = false, unmuted_at = $2, unmuted_by = $3
                    WHERE user_id = $1 AND is_active
                    """,
                    UUID(user_id),
                    at,
                    UUID(by) if by else None,
                )
        # "UPDATE <n>"
        return int(result.split()[-1])

    async def list_for_user(self, user_id: str) -> list[MuteRecord]:
        with db_errors("load mutes"):
            async with system_conn() as conn:
                rows = await conn.fetch(
                    "SELECT * FROM user_mutes WHERE user_id = $1 ORDER BY muted_at DESC",
                    UUID(user_id),
                )
                return [_row_to_mute(row) for row in rows]

    async def list_all(self) -> list[MuteRecord]:
        with db_errors("load mutes"):
            async with system_conn() as conn:
                rows = await conn.fetch("SELECT * FROM user_mutes ORDER BY muted_at DESC")
                return [_row_to_mute(row) for row in rows]
