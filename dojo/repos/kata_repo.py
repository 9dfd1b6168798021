"""Repository for kata operations."""

from __future__ import annotations

import logging
from typing import Any

import asyncpg

from dojo.db import db_errors, system_conn
from dojo.models.kata import KataRow, KataWrite
from dojo.repos.base import insert_clause, set_clause, validate_write
from katalog.errors import GatewayError, NotFound, ValidationError
from katalog.gateway import KataGateway, ObjectStorage
from katalog.types import Kata

logger = logging.getLogger(__name__)


def _row_to_kata(row: asyncpg.Record) -> Kata:
    """Convert a database row to a Kata."""
    return KataRow.model_validate(dict(row)).to_entity()


class KataRepo(KataGateway):
    """All kata-related database operations."""

    def __init__(self, storage: ObjectStorage | None = None) -> None:
        self.storage = storage

    async def list(self) -> list[Kata]:
        """
        Load the full catalog in display order.

        Returns:
            Every kata, sorted by sort_order then id
        """
        with db_errors("load katas"):
            async with system_conn() as conn:
                rows = await conn.fetch("SELECT * FROM katas ORDER BY sort_order, id")
                return [_row_to_kata(row) for row in rows]

    async def get(self, kata_id: int) -> Kata | None:
        with db_errors("load kata"):
            async with system_conn() as conn:
                row = await conn.fetchrow("SELECT * FROM katas WHERE id = $1", kata_id)
                return _row_to_kata(row) if row else None

    async def create(self, fields: dict[str, Any]) -> Kata:
        """
        Insert a kata.

        Args:
            fields: name (required), description, style, image_urls, video_urls, order

        Returns:
            The inserted kata with its database id
        """
        columns = validate_write(KataWrite, fields).columns()
        if not columns.get("name"):
            raise ValidationError("name: Field required")

        names, placeholders = insert_clause(columns)
        with db_errors("create kata"):
            async with system_conn() as conn:
                # S608/B608: column names come from KataWrite
                row = await conn.fetchrow(
                    f"INSERT INTO katas ({names}) VALUES ({placeholders}) RETURNING *",  # nosec B608
                    *columns.values(),
                )
                return _row_to_kata(row)

    async def update(self, kata_id: int, fields: dict[str, Any]) -> Kata:
        """
        Update the given fields of one kata.

        Args:
            kata_id: Kata id
            fields: Subset of the create fields

        Returns:
            The updated kata

        Raises:
            NotFound: No kata with that id
        """
        columns = validate_write(KataWrite, fields).columns()
        if not columns:
            kata = await self.get(kata_id)
            if kata is None:
                raise NotFound(f"Kata {kata_id} not found")
            return kata

        with db_errors("update kata"):
            async with system_conn() as conn:
                row = await conn.fetchrow(
                    f"""
                    UPDATE katas
                    SET {set_clause(columns)}
                    WHERE id = $1
                    RETURNING *
                    """,  # nosec B608
                    kata_id,
                    *columns.values(),
                )
        if row is None:
            raise NotFound(f"Kata {kata_id} not found")
        return _row_to_kata(row)

    async def delete(self, kata_id: int) -> None:
        """
        Delete a kata and then its stored images.

        Image deletions that fail are logged and left for orphan cleanup;
        the record is already gone at that point.

        Raises:
            NotFound: No kata with that id
        """
        with db_errors("delete kata"):
            async with system_conn() as conn:
                image_urls = await conn.fetchval(
                    "DELETE FROM katas WHERE id = $1 RETURNING image_urls",
                    kata_id,
                )
        if image_urls is None:
            raise NotFound(f"Kata {kata_id} not found")

        if self.storage is None:
            return
        for url in image_urls:
            try:
                await self.storage.delete(url)
            except GatewayError as e:
                logger.warning("kata_repo: could not delete image %s of kata %s: %s", url, kata_id, e)

    async def save_order(self, mapping: dict[int, int]) -> None:
        """
        Persist id -> order for the whole catalog in one transaction.

        Args:
            mapping: kata id to its new sort_order
        """
        if not mapping:
            return
        with db_errors("save kata order"):
            async with system_conn() as conn:
                await conn.executemany(
                    "UPDATE katas SET sort_order = $2 WHERE id = $1",
                    list(mapping.items()),
                )
