"""
Katalog: Shared Types

Data classes used across search, reorder, store, orchestrator and the
gateway adapters. Field names in to_dict()/from_dict() follow the backend
column names so rows round-trip without a mapping layer.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VIDEO_URL_PATTERN = re.compile(r"^https?://\S+$", re.IGNORECASE)

# Column limits shared with the database write models
KATA_NAME_MAX_LENGTH = 200
KATA_STYLE_MAX_LENGTH = 100

COMMENT_PAGE_SIZE = 20

# Fields a kata update may touch in the scalar round trip
KATA_SCALAR_FIELDS: tuple[str, ...] = ("name", "description", "style", "video_urls")


class UserRole(str, Enum):
    """Roles a club member can hold. Only administrators change roles."""

    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: str | None) -> UserRole:
        """Unknown or missing role strings fall back to an ordinary user."""
        for role in cls:
            if role.value == value:
                return role
        return cls.USER


class ForumCategory(str, Enum):
    GENERAL = "general"
    KATA_REQUESTS = "kata_requests"
    TECHNIQUES = "techniques"
    EVENTS = "events"
    FEEDBACK = "feedback"

    @classmethod
    def parse(cls, value: str | None) -> ForumCategory:
        for category in cls:
            if category.value == value:
                return category
        return cls.GENERAL


class KataCategory(str, Enum):
    """Style families used by the catalog's category filter."""

    ALL = "all"
    SHOTOKAN = "shotokan"
    GOJU_RYU = "goju_ryu"
    WADO_RYU = "wado_ryu"
    SHITO_RYU = "shito_ryu"
    KYOKUSHIN = "kyokushin"
    OTHER = "other"

    @classmethod
    def from_style(cls, style: str) -> KataCategory:
        """Classify free-text style ("Goju-ryu", "goju ryu", "GOJU") into a family."""
        decomposed = unicodedata.normalize("NFKD", style.lower())
        squashed = re.sub(r"[^a-z]", "", decomposed)
        for category in (cls.SHOTOKAN, cls.GOJU_RYU, cls.WADO_RYU, cls.SHITO_RYU, cls.KYOKUSHIN):
            stem = category.value.replace("_ryu", "")
            if squashed.startswith(stem):
                return category
        return cls.OTHER


class ReactionKind(str, Enum):
    LIKE = "like"
    FAVORITE = "favorite"


class ReactionTarget(str, Enum):
    """What a like or favorite points at."""

    KATA = "kata"
    FORUM_POST = "forum_post"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


def _parse_dt(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass
class Kata:
    """
    A named kata record.

    `image_urls` and `video_urls` keep insertion/reorder sequence.
    `order` is the display-order sort key; it is dense right after a
    reorder but may have gaps after deletions.
    """

    id: int | None
    name: str
    description: str = ""
    style: str = ""
    image_urls: list[str] = field(default_factory=list)
    video_urls: list[str] = field(default_factory=list)
    order: int = 0
    created_at: datetime | None = None

    def searchable_fields(self) -> tuple[str, ...]:
        return (self.name, self.description, self.style)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "style": self.style,
            "image_urls": list(self.image_urls),
            "video_urls": list(self.video_urls),
            "order": self.order,
            "created_at": _iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Kata:
        return cls(
            id=d.get("id"),
            name=d.get("name") or "",
            description=d.get("description") or "",
            style=d.get("style") or "",
            image_urls=list(d.get("image_urls") or []),
            video_urls=list(d.get("video_urls") or []),
            order=d.get("order") or 0,
            created_at=_parse_dt(d.get("created_at")),
        )


@dataclass
class ForumPost:
    id: int | None
    title: str
    content: str
    author_id: str = ""
    author_name: str = ""
    image_urls: list[str] = field(default_factory=list)
    category: ForumCategory = ForumCategory.GENERAL
    is_pinned: bool = False
    is_locked: bool = False
    comment_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def searchable_fields(self) -> tuple[str, ...]:
        return (self.title, self.content, self.category.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "author_id": self.author_id,
            "author_name": self.author_name,
            "image_urls": list(self.image_urls),
            "category": self.category.value,
            "is_pinned": self.is_pinned,
            "is_locked": self.is_locked,
            "comment_count": self.comment_count,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ForumPost:
        return cls(
            id=d.get("id"),
            title=d.get("title") or "",
            content=d.get("content") or "",
            author_id=str(d.get("author_id") or ""),
            author_name=d.get("author_name") or "",
            image_urls=list(d.get("image_urls") or []),
            category=ForumCategory.parse(d.get("category")),
            is_pinned=bool(d.get("is_pinned", False)),
            is_locked=bool(d.get("is_locked", False)),
            comment_count=d.get("comment_count") or 0,
            created_at=_parse_dt(d.get("created_at")),
            updated_at=_parse_dt(d.get("updated_at")),
        )


def pinned_first(posts: Iterable[ForumPost]) -> list[ForumPost]:
    """Forum display order: pinned posts on top, then newest first."""

    def key(post: ForumPost) -> tuple[bool, float]:
        created = post.created_at.timestamp() if post.created_at else 0.0
        return (not post.is_pinned, -created)

    return sorted(posts, key=key)


@dataclass
class ForumComment:
    """
    A reply on a forum post. `parent_comment_id` nests it under another
    comment; deleting a comment removes its replies too.
    """

    id: int | None
    post_id: int
    content: str
    author_id: str = ""
    author_name: str = ""
    parent_comment_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "post_id": self.post_id,
            "content": self.content,
            "author_id": self.author_id,
            "author_name": self.author_name,
            "parent_comment_id": self.parent_comment_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ForumComment:
        return cls(
            id=d.get("id"),
            post_id=d["post_id"],
            content=d.get("content") or "",
            author_id=str(d.get("author_id") or ""),
            author_name=d.get("author_name") or "",
            parent_comment_id=d.get("parent_comment_id"),
            created_at=_parse_dt(d.get("created_at")),
            updated_at=_parse_dt(d.get("updated_at")),
        )


@dataclass
class UserProfile:
    id: str | None
    email: str
    full_name: str = ""
    role: UserRole = UserRole.USER
    created_at: datetime | None = None

    def searchable_fields(self) -> tuple[str, ...]:
        return (self.full_name, self.email, self.role.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role.value,
            "created_at": _iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> UserProfile:
        return cls(
            id=str(d["id"]) if d.get("id") is not None else None,
            email=d.get("email") or "",
            full_name=d.get("full_name") or "",
            role=UserRole.parse(d.get("role")),
            created_at=_parse_dt(d.get("created_at")),
        )


@dataclass
class AuthUser:
    """The signed-in account as reported by the auth collaborator."""

    id: str
    email: str
    display_name: str = ""


@dataclass
class ReactionSummary:
    """Likes and favorite state of one kata or post, as seen by one user."""

    liked: bool = False
    favorited: bool = False
    like_count: int = 0


# ---------------------------------------------------------------------------
# Mutation inputs and results
# ---------------------------------------------------------------------------


@dataclass
class KataDraft:
    """Fields for a kata that does not exist yet."""

    name: str
    description: str = ""
    style: str = ""
    video_urls: list[str] = field(default_factory=list)


@dataclass
class KataChanges:
    """Scalar changes for an existing kata. None means "leave as is"."""

    name: str | None = None
    description: str | None = None
    style: str | None = None
    video_urls: list[str] | None = None

    def to_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        for key in KATA_SCALAR_FIELDS:
            value = getattr(self, key)
            if value is not None:
                fields[key] = list(value) if isinstance(value, list) else value
        return fields


class MutationState(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class UpdateResult:
    """
    Outcome of the three-step kata update.

    `failed_step` is None on full success, otherwise one of
    "fields", "images", "image_order".
    """

    kata_id: int
    fields_updated: bool = False
    images_uploaded: list[str] = field(default_factory=list)
    image_order_saved: bool = False
    failed_step: str | None = None
    error: str | None = None

    @property
    def is_partial(self) -> bool:
        """Something was written before a later step failed."""
        wrote = self.fields_updated or bool(self.images_uploaded) or self.image_order_saved
        return wrote and self.failed_step is not None


@dataclass
class CleanupReport:
    deleted: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.deleted)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def now_utc() -> datetime:
    return datetime.now(UTC)


def is_valid_video_url(url: str) -> bool:
    return bool(VIDEO_URL_PATTERN.match(url.strip()))
