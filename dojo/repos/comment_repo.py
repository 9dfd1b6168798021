"""Repository for forum comments."""

from __future__ import annotations

from typing import Any

import asyncpg

from dojo.db import db_errors, system_conn
from dojo.models.forum import ForumCommentRow, ForumCommentWrite
from dojo.repos.base import insert_clause, validate_write
from katalog.errors import NotFound
from katalog.gateway import CommentGateway
from katalog.types import ForumComment


def _row_to_comment(row: asyncpg.Record) -> ForumComment:
    return ForumCommentRow.model_validate(dict(row)).to_entity()


class CommentRepo(CommentGateway):
    """Comments on forum posts, oldest first."""

    async def list_for_post(self, post_id: int, limit: int, offset: int) -> list[ForumComment]:
        with db_errors("load comments"):
            async with system_conn() as conn:
                rows = await conn.fetch(
                    """
                    SELECT * FROM forum_comments
                    WHERE post_id = $1
                    ORDER BY created_at, id
                    LIMIT $2 OFFSET $3
                    """,
                    post_id,
                    limit,
                    offset,
                )
                return [_row_to_comment(row) for row in rows]

    async def get(self, comment_id: int) -> ForumComment:
        with db_errors("load comment"):
            async with system_conn() as conn:
                row = await conn.fetchrow("SELECT * FROM forum_comments WHERE id = $1", comment_id)
        if row is None:
            raise NotFound(f"Comment {comment_id} not found")
        return _row_to_comment(row)

    async def create(self, fields: dict[str, Any]) -> ForumComment:
        columns = validate_write(ForumCommentWrite, fields).columns()
        names, placeholders = insert_clause(columns)
        with db_errors("add comment"):
            async with system_conn() as conn:
                row = await conn.fetchrow(
                    f"INSERT INTO forum_comments ({names}) VALUES ({placeholders}) RETURNING *",  # nosec B608
                    *columns.values(),
                )
                return _row_to_comment(row)

    async def update(self, comment_id: int, content: str) -> ForumComment:
        with db_errors("update comment"):
            async with system_conn() as conn:
                row = await conn.fetchrow(
                    """
                    UPDATE forum_comments
                    SET content = $2, updated_at = now()
                    WHERE id = $1
                    RETURNING *
                    """,
                    comment_id,
                    content,
                )
        if row is None:
            raise NotFound(f"Comment {comment_id} not found")
        return _row_to_comment(row)

    async def delete(self, comment_id: int) -> list[int]:
        """
        Delete a comment together with every reply below it.

        Returns:
            Removed ids, the comment itself first
        """
        with db_errors("delete comment"):
            async with system_conn() as conn:
                rows = await conn.fetch(
                    """
                    WITH RECURSIVE thread AS (
                        SELECT id, 0 AS depth FROM forum_comments WHERE id = $1
                        UNION ALL
                        SELECT c.id, t.depth + 1
                        FROM forum_comments c JOIN thread t ON c.parent_comment_id = t.id
                    ),
                    removed AS (
                        DELETE FROM forum_comments
                        WHERE id IN (SELECT id FROM thread)
                        RETURNING id
                    )
                    SELECT removed.id FROM removed JOIN thread USING (id)
                    ORDER BY thread.depth, removed.id
                    """,
                    comment_id,
                )
        if not rows:
            raise NotFound(f"Comment {comment_id} not found")
        return [row["id"] for row in rows]
