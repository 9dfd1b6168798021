"""
Database connection pool and connection managers.

All database access goes through system_conn() or actor_conn().
Never use pool.acquire() directly outside this module.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import asynccontextmanager, contextmanager
from uuid import UUID

import asyncpg

from dojo.config import settings
from katalog.errors import GatewayError

pool: asyncpg.Pool | None = None


async def init_pool(dsn: str | None = None) -> None:
    """
    Initialize the connection pool.
    Called once when a session starts.
    """
    global pool
    pool = await asyncpg.create_pool(
        dsn=dsn or settings.DATABASE_URL,
        min_size=1,
        max_size=10,
        command_timeout=30,
        init=_init_connection,
    )


async def close_pool() -> None:
    """
    Close the connection pool.
    Called when the session ends.
    """
    global pool
    if pool is not None:
        await pool.close()
        pool = None


async def _init_connection(conn: asyncpg.Connection) -> None:
    """
    Initialize each new connection.
    Sets up type codecs for UUID and JSON handling.
    """
    await conn.set_type_codec(
        "uuid",
        encoder=str,
        decoder=lambda x: UUID(x),
        schema="pg_catalog",
    )
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


@asynccontextmanager
async def system_conn():
    """
    Acquire a pooled connection inside a transaction.

    Usage:
        async with system_conn() as conn:
            rows = await conn.fetch("SELECT * FROM katas ORDER BY sort_order, id")

    Yields:
        asyncpg.Connection
    """
    if pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")

    async with pool.acquire() as conn:
        async with conn.transaction():
            yield conn


@asynccontextmanager
async def actor_conn(actor_id: str | UUID):
    """
    Acquire a connection that records who is acting.

    Moderation writes run through this so the row-level policies on
    user_roles and user_mutes can check current_setting('app.actor_id').

    Args:
        actor_id: UUID of the signed-in user performing the write

    Yields:
        asyncpg.Connection with the actor set for this transaction
    """
    async with system_conn() as conn:
        await conn.execute(
            "SELECT set_config('app.actor_id', $1, true)",
            str(actor_id),
        )
        yield conn


@contextmanager
def db_errors(action: str) -> Iterator[None]:
    """
    Translate driver failures into GatewayError with the server's message.

    Usage:
        with db_errors("load katas"):
            async with system_conn() as conn:
                ...
    """
    try:
        yield
    except asyncpg.PostgresError as e:
        raise GatewayError(getattr(e, "message", None) or str(e)) from e
    except (OSError, asyncpg.InterfaceError) as e:
        raise GatewayError(f"Could not {action}: {e}") from e
