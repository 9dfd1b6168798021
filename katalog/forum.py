"""
Katalog: Forum Flows

Forum posts reuse the generic record flows. On top of those, moderators
pin and lock posts, and members comment on posts that are not locked.

Comments are paged straight from the gateway and are not kept in a
store; the post store only tracks each post's comment count.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from katalog.errors import CatalogError, PermissionDenied, ValidationError
from katalog.gateway import CommentGateway, ForumGateway, RoleGateway
from katalog.moderation import can_moderate
from katalog.orchestrator import LivenessToken, RecordOrchestrator, is_alive
from katalog.store import EntityStore
from katalog.types import COMMENT_PAGE_SIZE, AuthUser, ForumComment, ForumPost, pinned_first

logger = logging.getLogger(__name__)


def _author_name(actor: AuthUser) -> str:
    return actor.display_name or actor.email.split("@")[0] or "Anonymous User"


def _require_content(content: str) -> str:
    content = content.strip()
    if not content:
        raise ValidationError("A comment needs content")
    return content


class ForumOrchestrator(RecordOrchestrator[ForumPost]):
    """Posts plus moderation toggles and comments."""

    def __init__(
        self,
        gateway: ForumGateway,
        comments: CommentGateway,
        roles: RoleGateway,
        store: EntityStore[ForumPost] | None = None,
    ) -> None:
        super().__init__(gateway, store if store is not None else EntityStore[ForumPost]())
        self._posts = gateway
        self._comments = comments
        self._roles = roles

    def _show(self, post: ForumPost) -> None:
        self.store.upsert_one(post)
        self.store.replace_items(pinned_first(self.store.items))

    def _count_comments(self, post_id: int, delta: int) -> None:
        post = self.store.get(post_id)
        if post is not None:
            self.store.upsert_one(replace(post, comment_count=max(0, post.comment_count + delta)))

    # -- moderation toggles --

    async def toggle_pin(self, actor: AuthUser, post_id: int, token: LivenessToken | None = None) -> ForumPost:
        """Pin or unpin a post. Pinned posts are listed first."""
        return await self._toggle(actor, post_id, "is_pinned", "pin posts", token)

    async def toggle_lock(self, actor: AuthUser, post_id: int, token: LivenessToken | None = None) -> ForumPost:
        """Lock or unlock a post. Locked posts take no new comments."""
        return await self._toggle(actor, post_id, "is_locked", "lock posts", token)

    async def _toggle(
        self,
        actor: AuthUser,
        post_id: int,
        flag: str,
        action: str,
        token: LivenessToken | None,
    ) -> ForumPost:
        with self._track(flag, post_id):
            try:
                role = await self._roles.get_role(actor.id)
                if not can_moderate(role):
                    raise PermissionDenied(f"Role '{role.value}' may not {action}")
                post = await self._posts.toggle_flag(post_id, flag)
            except CatalogError as exc:
                logger.warning("forum: could not change %s on post %s: %s", flag, post_id, exc)
                self._fail(str(exc), token)
                raise
            if is_alive(token):
                self._show(post)
                self.store.clear_error()
            logger.info("forum: post %s %s=%s", post_id, flag, getattr(post, flag))
            return post

    # -- comments --

    async def list_comments(
        self,
        post_id: int,
        limit: int = COMMENT_PAGE_SIZE,
        offset: int = 0,
        token: LivenessToken | None = None,
    ) -> list[ForumComment]:
        """One page of a post's comments, oldest first."""
        if limit < 1 or offset < 0:
            raise ValidationError("limit must be positive and offset non-negative")
        try:
            return await self._comments.list_for_post(post_id, limit, offset)
        except CatalogError as exc:
            self._fail(f"Failed to load comments: {exc}", token)
            raise

    async def add_comment(
        self,
        actor: AuthUser,
        post_id: int,
        content: str,
        parent_comment_id: int | None = None,
        token: LivenessToken | None = None,
    ) -> ForumComment:
        """
        Comment on a post, optionally as a reply to another comment.

        Raises:
            ValidationError: Empty content, or a parent on another post
            PermissionDenied: The post is locked
            GatewayError: A collaborator call failed
        """
        content = _require_content(content)

        with self._track("comment", post_id):
            try:
                post = await self._posts.get(post_id)
                if post.is_locked:
                    raise PermissionDenied("This post is locked and cannot receive new comments")
                if parent_comment_id is not None:
                    parent = await self._comments.get(parent_comment_id)
                    if parent.post_id != post_id:
                        raise ValidationError(f"Comment {parent_comment_id} belongs to another post")
                comment = await self._comments.create(
                    {
                        "post_id": post_id,
                        "content": content,
                        "author_id": actor.id,
                        "author_name": _author_name(actor),
                        "parent_comment_id": parent_comment_id,
                    }
                )
            except CatalogError as exc:
                logger.warning("forum: comment on post %s failed: %s", post_id, exc)
                self._fail(str(exc), token)
                raise
            if is_alive(token):
                self._count_comments(post_id, 1)
                self.store.clear_error()
            return comment

    async def update_comment(
        self,
        actor: AuthUser,
        comment_id: int,
        content: str,
        token: LivenessToken | None = None,
    ) -> ForumComment:
        """Only the comment's author may edit it."""
        content = _require_content(content)

        with self._track("edit_comment", comment_id):
            try:
                comment = await self._comments.get(comment_id)
                if comment.author_id != actor.id:
                    raise PermissionDenied("You can only edit your own comments")
                updated = await self._comments.update(comment_id, content)
            except CatalogError as exc:
                self._fail(str(exc), token)
                raise
            if is_alive(token):
                self.store.clear_error()
            return updated

    async def delete_comment(
        self,
        actor: AuthUser,
        comment_id: int,
        token: LivenessToken | None = None,
    ) -> list[int]:
        """
        Delete a comment and its replies.

        Allowed for the comment's author, the post's author and moderators.

        Returns:
            Ids of every removed comment
        """
        with self._track("delete_comment", comment_id):
            try:
                comment = await self._comments.get(comment_id)
                if comment.author_id != actor.id:
                    post = await self._posts.get(comment.post_id)
                    role = await self._roles.get_role(actor.id)
                    if post.author_id != actor.id and not can_moderate(role):
                        raise PermissionDenied("You do not have permission to delete this comment")
                removed = await self._comments.delete(comment_id)
            except CatalogError as exc:
                self._fail(str(exc), token)
                raise
            if is_alive(token):
                self._count_comments(comment.post_id, -len(removed))
                self.store.clear_error()
            logger.info("forum: deleted comment %s and %d replies", comment_id, len(removed) - 1)
            return removed
