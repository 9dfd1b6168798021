"""Repository for forum post operations."""

from __future__ import annotations

import logging
from typing import Any

import asyncpg

from dojo.db import db_errors, system_conn
from dojo.models.forum import ForumPostRow, ForumPostWrite
from dojo.repos.base import insert_clause, set_clause, validate_write
from katalog.errors import NotFound, ValidationError
from katalog.gateway import ForumGateway
from katalog.types import ForumPost

logger = logging.getLogger(__name__)

# Appended to every SELECT/RETURNING list so posts carry their comment count
_COMMENT_COUNT = "(SELECT count(*) FROM forum_comments c WHERE c.post_id = forum_posts.id) AS comment_count"

_FLAGS = ("is_pinned", "is_locked")


def _row_to_post(row: asyncpg.Record) -> ForumPost:
    return ForumPostRow.model_validate(dict(row)).to_entity()


class ForumRepo(ForumGateway):
    """Forum posts, pinned first then newest first."""

    async def list(self) -> list[ForumPost]:
        with db_errors("load forum posts"):
            async with system_conn() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT *, {_COMMENT_COUNT} FROM forum_posts
                    ORDER BY is_pinned DESC, created_at DESC, id DESC
                    """  # nosec B608
                )
                return [_row_to_post(row) for row in rows]

    async def get(self, post_id: int) -> ForumPost:
        with db_errors("load forum post"):
            async with system_conn() as conn:
                row = await conn.fetchrow(
                    f"SELECT *, {_COMMENT_COUNT} FROM forum_posts WHERE id = $1",  # nosec B608
                    post_id,
                )
        if row is None:
            raise NotFound(f"Post {post_id} not found")
        return _row_to_post(row)

    async def create(self, fields: dict[str, Any]) -> ForumPost:
        columns = validate_write(ForumPostWrite, fields).columns()
        if not columns.get("title") or not columns.get("content"):
            raise ValidationError("A post needs a title and content")

        names, placeholders = insert_clause(columns)
        with db_errors("create forum post"):
            async with system_conn() as conn:
                row = await conn.fetchrow(
                    f"INSERT INTO forum_posts ({names}) VALUES ({placeholders}) RETURNING *",  # nosec B608
                    *columns.values(),
                )
                return _row_to_post(row)

    async def update(self, post_id: int, fields: dict[str, Any]) -> ForumPost:
        columns = validate_write(ForumPostWrite, fields).columns()
        with db_errors("update forum post"):
            async with system_conn() as conn:
                row = await conn.fetchrow(
                    f"""
                    UPDATE forum_posts
                    SET {set_clause(columns) + ", " if columns else ""}updated_at = now()
                    WHERE id = $1
                    RETURNING *, {_COMMENT_COUNT}
                    """,  # nosec B608
                    post_id,
                    *columns.values(),
                )
        if row is None:
            raise NotFound(f"Post {post_id} not found")
        return _row_to_post(row)

    async def toggle_flag(self, post_id: int, flag: str) -> ForumPost:
        """
        Flip a boolean flag in a single statement.

        Args:
            post_id: Post to change
            flag: "is_pinned" or "is_locked"

        Returns:
            The post after the change
        """
        if flag not in _FLAGS:
            raise ValueError(f"Unknown post flag: {flag}")
        with db_errors("update forum post"):
            async with system_conn() as conn:
                row = await conn.fetchrow(
                    f"""
                    UPDATE forum_posts
                    SET {flag} = NOT {flag}, updated_at = now()
                    WHERE id = $1
                    RETURNING *, {_COMMENT_COUNT}
                    """,  # nosec B608
                    post_id,
                )
        if row is None:
            raise NotFound(f"Post {post_id} not found")
        logger.info("forum_repo: post %s %s=%s", post_id, flag, row[flag])
        return _row_to_post(row)

    async def delete(self, post_id: int) -> None:
        with db_errors("delete forum post"):
            async with system_conn() as conn:
                result = await conn.execute("DELETE FROM forum_posts WHERE id = $1", post_id)
        if result != "DELETE 1":
            raise NotFound(f"Post {post_id} not found")
