"""
Katalog: Likes and Favorites

Per-user reactions on katas and forum posts. A like is public and
counted; a favorite is private and backs the member's favorites list.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from katalog.gateway import ReactionGateway
from katalog.types import AuthUser, Kata, ReactionKind, ReactionSummary, ReactionTarget

logger = logging.getLogger(__name__)


class InteractionService:
    def __init__(self, reactions: ReactionGateway) -> None:
        self._reactions = reactions

    async def toggle_like(
        self,
        actor: AuthUser,
        target_id: int,
        target: ReactionTarget = ReactionTarget.KATA,
    ) -> bool:
        """Like or unlike. Returns True when the target is now liked."""
        liked = await self._reactions.toggle(ReactionKind.LIKE, target, target_id, actor.id)
        logger.info("interactions: %s %s %s %s", actor.id, "liked" if liked else "unliked", target.value, target_id)
        return liked

    async def toggle_favorite(
        self,
        actor: AuthUser,
        target_id: int,
        target: ReactionTarget = ReactionTarget.KATA,
    ) -> bool:
        """Add to or remove from favorites. Returns True when now a favorite."""
        return await self._reactions.toggle(ReactionKind.FAVORITE, target, target_id, actor.id)

    async def summary(
        self,
        actor: AuthUser,
        target_id: int,
        target: ReactionTarget = ReactionTarget.KATA,
    ) -> ReactionSummary:
        liked, favorited, like_count = await asyncio.gather(
            self._reactions.has(ReactionKind.LIKE, target, target_id, actor.id),
            self._reactions.has(ReactionKind.FAVORITE, target, target_id, actor.id),
            self._reactions.count(ReactionKind.LIKE, target, target_id),
        )
        return ReactionSummary(liked=liked, favorited=favorited, like_count=like_count)

    async def favorite_ids(self, actor: AuthUser, target: ReactionTarget = ReactionTarget.KATA) -> list[int]:
        """Most recently favorited first."""
        return await self._reactions.target_ids(ReactionKind.FAVORITE, target, actor.id)

    async def favorite_katas(self, actor: AuthUser, katas: Iterable[Kata]) -> list[Kata]:
        """The member's favorites among `katas`, most recently favorited first."""
        by_id = {kata.id: kata for kata in katas}
        return [by_id[kata_id] for kata_id in await self.favorite_ids(actor) if kata_id in by_id]
