"""
Dojo session wiring.

Builds the catalog core on top of the production adapters and owns their
lifetime: database pool, auth HTTP client.

Usage:
    async with open_session() as session:
        await session.auth.sign_in(email, password)
        await session.katas.refresh()
        session.katas.store.apply_query("heian")
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from dojo import db
from dojo.repos import CommentRepo, ForumRepo, KataRepo, MuteRepo, ReactionRepo, UserRepo
from dojo.services.auth import AuthService
from dojo.services.media import DirectoryMediaSource
from dojo.services.storage import StorageService
from katalog.forum import ForumOrchestrator
from katalog.interactions import InteractionService
from katalog.moderation import ModerationService
from katalog.orchestrator import KataOrchestrator, RecordOrchestrator
from katalog.store import EntityStore
from katalog.types import ForumPost, Kata, UserProfile

logger = logging.getLogger(__name__)


@dataclass
class DojoSession:
    katas: KataOrchestrator
    forum: ForumOrchestrator
    interactions: InteractionService
    users: RecordOrchestrator[UserProfile]
    moderation: ModerationService
    auth: AuthService
    media: DirectoryMediaSource
    storage: StorageService


def build_session(storage: StorageService | None = None, auth: AuthService | None = None) -> DojoSession:
    """Wire repos and services into orchestrators. Does not touch the network."""
    storage = storage or StorageService()
    user_repo = UserRepo()
    return DojoSession(
        katas=KataOrchestrator(KataRepo(storage), storage, EntityStore[Kata]()),
        forum=ForumOrchestrator(ForumRepo(), CommentRepo(), user_repo, EntityStore[ForumPost]()),
        interactions=InteractionService(ReactionRepo()),
        users=RecordOrchestrator(user_repo, EntityStore[UserProfile]()),
        moderation=ModerationService(MuteRepo(), user_repo),
        auth=auth or AuthService(user_repo),
        media=DirectoryMediaSource(),
        storage=storage,
    )


@asynccontextmanager
async def open_session(load_katas: bool = True) -> AsyncIterator[DojoSession]:
    """
    Start a session: open the pool, wire the adapters and load the catalog.

    Args:
        load_katas: Refresh the kata store before yielding
    """
    await db.init_pool()
    logger.info("session: database pool initialized")
    session = build_session()
    try:
        if load_katas:
            await session.katas.refresh()
        yield session
    finally:
        await session.auth.close()
        await db.close_pool()
        logger.info("session: closed")
