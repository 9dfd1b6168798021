"""
Pytest configuration and fixtures for dojo adapter tests.

Postgres-backed fixtures skip when DATABASE_URL is not set.
"""

from __future__ import annotations

import os

# Set test environment variables before importing config
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only")
os.environ.setdefault("AUTH_URL", "https://auth.test")
os.environ.setdefault("AUTH_API_KEY", "test-anon-key")
os.environ.setdefault("STORAGE_ENDPOINT", "https://storage.test")
os.environ.setdefault("STORAGE_PUBLIC_URL", "https://cdn.test/kata_images")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from dojo import db  # noqa: E402


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def initialize_pool():
    """Initialize pool once for all database tests."""
    if not os.environ.get("DATABASE_URL"):
        pytest.skip("DATABASE_URL not set")
    await db.init_pool(os.environ["DATABASE_URL"])
    yield
    await db.close_pool()


@pytest_asyncio.fixture(loop_scope="session")
async def clean_tables(initialize_pool):
    """Empty the catalog tables around each database test."""
    tables = "favorites, likes, forum_comments, forum_posts, user_mutes, user_roles, user_profiles, katas"
    async with db.system_conn() as conn:
        await conn.execute(f"TRUNCATE {tables} RESTART IDENTITY CASCADE")
    yield
    async with db.system_conn() as conn:
        await conn.execute(f"TRUNCATE {tables} RESTART IDENTITY CASCADE")
