"""Repository for likes and favorites."""

from __future__ import annotations

import logging
from uuid import UUID

from dojo.db import db_errors, system_conn
from katalog.gateway import ReactionGateway
from katalog.types import ReactionKind, ReactionTarget

logger = logging.getLogger(__name__)

# Fixed table names, one per reaction kind
_TABLES = {
    ReactionKind.LIKE: "likes",
    ReactionKind.FAVORITE: "favorites",
}


class ReactionRepo(ReactionGateway):
    """Likes and favorites share one shape and live in sibling tables."""

    async def toggle(self, kind: ReactionKind, target: ReactionTarget, target_id: int, user_id: str) -> bool:
        """
        Remove the reaction if present, otherwise add it.

        Returns:
            True when the reaction exists after the call
        """
        table = _TABLES[kind]
        with db_errors(f"toggle {kind.value}"):
            async with system_conn() as conn:
                result = await conn.execute(
                    f"""
                    DELETE FROM {table}
                    WHERE user_id = $1 AND target_type = $2 AND target_id = $3
                    """,  # nosec B608
                    UUID(user_id),
                    target.value,
                    target_id,
                )
                if result != "DELETE 0":
                    return False
                await conn.execute(
                    f"""
                    INSERT INTO {table} (user_id, target_type, target_id)
                    VALUES ($1, $2, $3)
                    ON CONFLICT (user_id, target_type, target_id) DO NOTHING
                    """,  # nosec B608
                    UUID(user_id),
                    target.value,
                    target_id,
                )
        logger.debug("reaction_repo: %s added on %s %s", kind.value, target.value, target_id)
        return True

    async def count(self, kind: ReactionKind, target: ReactionTarget, target_id: int) -> int:
        with db_errors(f"count {kind.value}s"):
            async with system_conn() as conn:
                return await conn.fetchval(
                    f"SELECT count(*) FROM {_TABLES[kind]} WHERE target_type = $1 AND target_id = $2",  # nosec B608
                    target.value,
                    target_id,
                )

    async def has(self, kind: ReactionKind, target: ReactionTarget, target_id: int, user_id: str) -> bool:
        with db_errors(f"load {kind.value}"):
            async with system_conn() as conn:
                return await conn.fetchval(
                    f"""
                    SELECT EXISTS (
                        SELECT 1 FROM {_TABLES[kind]}
                        WHERE user_id = $1 AND target_type = $2 AND target_id = $3
                    )
                    """,  # nosec B608
                    UUID(user_id),
                    target.value,
                    target_id,
                )

    async def target_ids(self, kind: ReactionKind, target: ReactionTarget, user_id: str) -> list[int]:
        with db_errors(f"load {kind.value}s"):
            async with system_conn() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT target_id FROM {_TABLES[kind]}
                    WHERE user_id = $1 AND target_type = $2
                    ORDER BY created_at DESC, id DESC
                    """,  # nosec B608
                    UUID(user_id),
                    target.value,
                )
                return [row["target_id"] for row in rows]
