"""Forum post and comment models."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from katalog.types import ForumCategory, ForumComment, ForumPost


class ForumPostRow(BaseModel):
    """Represents a row in the forum_posts table."""

    id: int
    title: str
    content: str
    author_id: UUID | None = None
    author_name: str = ""
    image_urls: list[str] = Field(default_factory=list)
    category: str = ForumCategory.GENERAL.value
    is_pinned: bool = False
    is_locked: bool = False
    comment_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_entity(self) -> ForumPost:
        return ForumPost.from_dict({**self.model_dump(), "author_id": str(self.author_id or "")})


class ForumPostWrite(BaseModel):
    model_config = {"extra": "forbid"}

    title: str | None = Field(default=None, min_length=1, max_length=300)
    content: str | None = Field(default=None, min_length=1)
    author_id: UUID | None = None
    author_name: str | None = None
    image_urls: list[str] | None = None
    category: ForumCategory | None = None
    is_pinned: bool | None = None
    is_locked: bool | None = None

    def columns(self) -> dict[str, object]:
        return self.model_dump(exclude_unset=True, mode="json")


class ForumCommentRow(BaseModel):
    """Represents a row in the forum_comments table."""

    id: int
    post_id: int
    content: str
    author_id: UUID | None = None
    author_name: str = ""
    parent_comment_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_entity(self) -> ForumComment:
        return ForumComment.from_dict({**self.model_dump(), "author_id": str(self.author_id or "")})


class ForumCommentWrite(BaseModel):
    model_config = {"extra": "forbid"}

    post_id: int
    content: str = Field(min_length=1, max_length=5000)
    author_id: UUID
    author_name: str = ""
    parent_comment_id: int | None = None

    def columns(self) -> dict[str, object]:
        return self.model_dump()
