"""
Katalog: Collaborator Interfaces

Abstract contracts for the external backend (records, comments,
reactions, auth, object storage, device media). Implement with
Postgres/S3/HTTP adapters in production (see the `dojo` package) or
with the in-memory classes below for tests and offline sessions.

Every method raises GatewayError (or a subclass) with a human-readable
message on failure.
"""

from __future__ import annotations

import copy
import itertools
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar
from uuid import uuid4

from katalog.errors import GatewayError, NotFound
from katalog.types import (
    AuthUser,
    ForumComment,
    ForumPost,
    Kata,
    ReactionKind,
    ReactionTarget,
    UserRole,
    now_utc,
    pinned_first,
)

if TYPE_CHECKING:
    from katalog.moderation import MuteRecord

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


class RecordGateway(ABC, Generic[T]):
    """CRUD over one entity type."""

    @abstractmethod
    async def list(self) -> list[T]: ...

    @abstractmethod
    async def create(self, fields: dict[str, Any]) -> T: ...

    @abstractmethod
    async def update(self, record_id: Any, fields: dict[str, Any]) -> T: ...

    @abstractmethod
    async def delete(self, record_id: Any) -> None: ...


class KataGateway(RecordGateway[Kata]):
    """Kata records. `delete` also removes the record's stored images."""

    @abstractmethod
    async def save_order(self, mapping: dict[int, int]) -> None:
        """Persist id -> order for the whole collection."""


class ForumGateway(RecordGateway[ForumPost]):
    """Forum posts, listed pinned first then newest first."""

    @abstractmethod
    async def get(self, post_id: int) -> ForumPost:
        """Raises NotFound for an unknown post."""

    @abstractmethod
    async def toggle_flag(self, post_id: int, flag: str) -> ForumPost:
        """Flip `is_pinned` or `is_locked` in one write and return the post."""


class CommentGateway(ABC):
    @abstractmethod
    async def list_for_post(self, post_id: int, limit: int, offset: int) -> list[ForumComment]:
        """One page of a post's comments, oldest first."""

    @abstractmethod
    async def get(self, comment_id: int) -> ForumComment:
        """Raises NotFound for an unknown comment."""

    @abstractmethod
    async def create(self, fields: dict[str, Any]) -> ForumComment: ...

    @abstractmethod
    async def update(self, comment_id: int, content: str) -> ForumComment: ...

    @abstractmethod
    async def delete(self, comment_id: int) -> list[int]:
        """Delete a comment and every reply below it; returns the removed ids."""


class ReactionGateway(ABC):
    """Likes and favorites: at most one of each kind per user and target."""

    @abstractmethod
    async def toggle(self, kind: ReactionKind, target: ReactionTarget, target_id: int, user_id: str) -> bool:
        """Add the reaction if absent, remove it if present. True when now set."""

    @abstractmethod
    async def count(self, kind: ReactionKind, target: ReactionTarget, target_id: int) -> int: ...

    @abstractmethod
    async def has(self, kind: ReactionKind, target: ReactionTarget, target_id: int, user_id: str) -> bool: ...

    @abstractmethod
    async def target_ids(self, kind: ReactionKind, target: ReactionTarget, user_id: str) -> list[int]:
        """Targets the user reacted to, most recent first."""


class ObjectStorage(ABC):
    """Blob storage for images. References are public URLs."""

    @abstractmethod
    async def upload(self, path: Path, path_hint: str) -> str: ...

    @abstractmethod
    async def delete(self, url: str) -> None: ...

    @abstractmethod
    async def list_orphaned(self, existing_references: set[str]) -> list[str]:
        """Stored objects whose URL is not in `existing_references`."""


class AuthGateway(ABC):
    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthUser: ...

    @abstractmethod
    async def sign_out(self) -> None: ...

    @abstractmethod
    async def current_user(self) -> AuthUser | None: ...

    @abstractmethod
    async def role_of(self, user_id: str) -> UserRole: ...


class MediaSource(ABC):
    """Device image picker and camera. Cancelling is not an error."""

    @abstractmethod
    async def pick_images_from_gallery(self) -> list[Path]: ...

    @abstractmethod
    async def capture_image_with_camera(self) -> Path | None: ...


class MuteGateway(ABC):
    @abstractmethod
    async def insert(self, record: MuteRecord) -> MuteRecord: ...

    @abstractmethod
    async def deactivate_active(self, user_id: str, at: datetime, by: str | None) -> int:
        """Mark every active mute for the user inactive; returns how many changed."""

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[MuteRecord]:
        """Newest first."""

    @abstractmethod
    async def list_all(self) -> list[MuteRecord]: ...


class RoleGateway(ABC):
    @abstractmethod
    async def get_role(self, user_id: str) -> UserRole: ...

    @abstractmethod
    async def set_role(self, user_id: str, role: UserRole, granted_by: str) -> None: ...


# ---------------------------------------------------------------------------
# In-memory implementations
# ---------------------------------------------------------------------------


class _FailureInjection:
    """Shared knob for tests: `errors[op]` is raised by that operation."""

    def __init__(self) -> None:
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, Any]] = []

    def _enter(self, op: str, arg: Any = None) -> None:
        self.calls.append((op, arg))
        error = self.errors.get(op)
        if error is not None:
            raise error


class MemoryObjectStorage(ObjectStorage, _FailureInjection):
    """In-memory blob store. `fail_uploads_at` holds 1-based upload call numbers that fail."""

    def __init__(self, base_url: str = "memory://kata_images") -> None:
        _FailureInjection.__init__(self)
        self.base_url = base_url.rstrip("/")
        self.objects: dict[str, bytes] = {}
        self.fail_uploads_at: set[int] = set()
        self._uploads = 0

    async def upload(self, path: Path, path_hint: str) -> str:
        self._enter("upload", path_hint)
        self._uploads += 1
        if self._uploads in self.fail_uploads_at:
            raise GatewayError(f"Upload of {Path(path).name} failed")
        url = f"{self.base_url}/{path_hint.strip('/')}/{Path(path).name}"
        self.objects[url] = Path(path).read_bytes() if Path(path).exists() else b""
        return url

    async def delete(self, url: str) -> None:
        self._enter("delete", url)
        self.objects.pop(url, None)

    async def list_orphaned(self, existing_references: set[str]) -> list[str]:
        self._enter("list_orphaned")
        return sorted(url for url in self.objects if url not in existing_references)


class MemoryRecordGateway(RecordGateway[T], _FailureInjection):
    """
    Dict-backed gateway. `factory` builds an entity from a field dict;
    `new_id` hands out identifiers (integers by default).
    """

    def __init__(
        self,
        factory: Callable[[dict[str, Any]], T],
        new_id: Callable[[], Any] | None = None,
    ) -> None:
        _FailureInjection.__init__(self)
        self._factory = factory
        counter = itertools.count(1)
        self._new_id = new_id or (lambda: next(counter))
        self.records: dict[Any, T] = {}

    def seed(self, records: list[T]) -> None:
        for record in records:
            self.records[record.id] = copy.deepcopy(record)

    async def list(self) -> list[T]:
        self._enter("list")
        return [copy.deepcopy(record) for record in self.records.values()]

    async def create(self, fields: dict[str, Any]) -> T:
        self._enter("create", fields)
        record_id = self._new_id()
        while record_id in self.records:
            record_id = self._new_id()
        record = self._factory({**fields, "id": record_id})
        self.records[record_id] = record
        return copy.deepcopy(record)

    async def update(self, record_id: Any, fields: dict[str, Any]) -> T:
        self._enter("update", (record_id, fields))
        if record_id not in self.records:
            raise NotFound(f"Record {record_id} not found")
        updated = replace(self.records[record_id], **fields)
        self.records[record_id] = updated
        return copy.deepcopy(updated)

    async def delete(self, record_id: Any) -> None:
        self._enter("delete", record_id)
        if record_id not in self.records:
            raise NotFound(f"Record {record_id} not found")
        del self.records[record_id]


class MemoryKataGateway(MemoryRecordGateway[Kata], KataGateway):
    def __init__(self, storage: ObjectStorage | None = None) -> None:
        super().__init__(Kata.from_dict)
        self._storage = storage

    async def delete(self, record_id: Any) -> None:
        kata = self.records.get(record_id)
        await super().delete(record_id)
        if kata is not None and self._storage is not None:
            for url in kata.image_urls:
                await self._storage.delete(url)

    async def save_order(self, mapping: dict[int, int]) -> None:
        self._enter("save_order", mapping)
        for kata_id, order in mapping.items():
            if kata_id in self.records:
                self.records[kata_id] = replace(self.records[kata_id], order=order)


_POST_FLAGS = ("is_pinned", "is_locked")


class MemoryForumGateway(MemoryRecordGateway[ForumPost], ForumGateway):
    def __init__(self) -> None:
        super().__init__(ForumPost.from_dict)

    async def list(self) -> list[ForumPost]:
        return pinned_first(await super().list())

    async def get(self, post_id: int) -> ForumPost:
        self._enter("get", post_id)
        if post_id not in self.records:
            raise NotFound(f"Post {post_id} not found")
        return copy.deepcopy(self.records[post_id])

    async def toggle_flag(self, post_id: int, flag: str) -> ForumPost:
        if flag not in _POST_FLAGS:
            raise ValueError(f"Unknown post flag: {flag}")
        self._enter("toggle_flag", (post_id, flag))
        if post_id not in self.records:
            raise NotFound(f"Post {post_id} not found")
        post = self.records[post_id]
        self.records[post_id] = replace(post, **{flag: not getattr(post, flag), "updated_at": now_utc()})
        return copy.deepcopy(self.records[post_id])


class MemoryCommentGateway(CommentGateway, _FailureInjection):
    def __init__(self) -> None:
        _FailureInjection.__init__(self)
        self._ids = itertools.count(1)
        self.records: dict[int, ForumComment] = {}

    async def list_for_post(self, post_id: int, limit: int, offset: int) -> list[ForumComment]:
        self._enter("list_for_post", post_id)
        mine = [c for c in self.records.values() if c.post_id == post_id]
        return [copy.deepcopy(c) for c in mine[offset : offset + limit]]

    async def get(self, comment_id: int) -> ForumComment:
        self._enter("get", comment_id)
        if comment_id not in self.records:
            raise NotFound(f"Comment {comment_id} not found")
        return copy.deepcopy(self.records[comment_id])

    async def create(self, fields: dict[str, Any]) -> ForumComment:
        self._enter("create", fields)
        now = now_utc()
        comment = ForumComment.from_dict({**fields, "id": next(self._ids), "created_at": now, "updated_at": now})
        self.records[comment.id] = comment
        return copy.deepcopy(comment)

    async def update(self, comment_id: int, content: str) -> ForumComment:
        self._enter("update", (comment_id, content))
        if comment_id not in self.records:
            raise NotFound(f"Comment {comment_id} not found")
        self.records[comment_id] = replace(self.records[comment_id], content=content, updated_at=now_utc())
        return copy.deepcopy(self.records[comment_id])

    async def delete(self, comment_id: int) -> list[int]:
        self._enter("delete", comment_id)
        if comment_id not in self.records:
            raise NotFound(f"Comment {comment_id} not found")
        removed = [comment_id]
        for current in removed:
            removed.extend(c.id for c in self.records.values() if c.parent_comment_id == current)
        for removed_id in removed:
            del self.records[removed_id]
        return removed


class MemoryReactionGateway(ReactionGateway, _FailureInjection):
    def __init__(self) -> None:
        _FailureInjection.__init__(self)
        self._seq = itertools.count()
        # (kind, target, target_id, user_id) -> insertion sequence
        self.reactions: dict[tuple[ReactionKind, ReactionTarget, int, str], int] = {}

    async def toggle(self, kind: ReactionKind, target: ReactionTarget, target_id: int, user_id: str) -> bool:
        self._enter("toggle", (kind, target, target_id))
        key = (kind, target, target_id, user_id)
        if key in self.reactions:
            del self.reactions[key]
            return False
        self.reactions[key] = next(self._seq)
        return True

    async def count(self, kind: ReactionKind, target: ReactionTarget, target_id: int) -> int:
        self._enter("count", (kind, target, target_id))
        return sum(1 for k, t, i, _ in self.reactions if (k, t, i) == (kind, target, target_id))

    async def has(self, kind: ReactionKind, target: ReactionTarget, target_id: int, user_id: str) -> bool:
        self._enter("has", (kind, target, target_id))
        return (kind, target, target_id, user_id) in self.reactions

    async def target_ids(self, kind: ReactionKind, target: ReactionTarget, user_id: str) -> list[int]:
        self._enter("target_ids", (kind, target))
        mine = [(seq, i) for (k, t, i, u), seq in self.reactions.items() if (k, t, u) == (kind, target, user_id)]
        return [target_id for _, target_id in sorted(mine, reverse=True)]


class MemoryAuthGateway(AuthGateway, _FailureInjection):
    def __init__(self) -> None:
        _FailureInjection.__init__(self)
        self.accounts: dict[str, tuple[str, AuthUser]] = {}
        self.roles: dict[str, UserRole] = {}
        self._current: AuthUser | None = None

    def add_account(self, email: str, password: str, role: UserRole = UserRole.USER) -> AuthUser:
        user = AuthUser(id=str(uuid4()), email=email, display_name=email.split("@")[0])
        self.accounts[email] = (password, user)
        self.roles[user.id] = role
        return user

    async def sign_in(self, email: str, password: str) -> AuthUser:
        self._enter("sign_in", email)
        entry = self.accounts.get(email)
        if entry is None or entry[0] != password:
            raise GatewayError("Invalid login credentials")
        self._current = entry[1]
        return entry[1]

    async def sign_out(self) -> None:
        self._enter("sign_out")
        self._current = None

    async def current_user(self) -> AuthUser | None:
        return self._current

    async def role_of(self, user_id: str) -> UserRole:
        self._enter("role_of", user_id)
        return self.roles.get(user_id, UserRole.USER)


class MemoryRoleGateway(RoleGateway, _FailureInjection):
    def __init__(self, roles: dict[str, UserRole] | None = None) -> None:
        _FailureInjection.__init__(self)
        self.roles: dict[str, UserRole] = dict(roles or {})
        self.granted_by: dict[str, str] = {}

    async def get_role(self, user_id: str) -> UserRole:
        self._enter("get_role", user_id)
        return self.roles.get(user_id, UserRole.USER)

    async def set_role(self, user_id: str, role: UserRole, granted_by: str) -> None:
        self._enter("set_role", (user_id, role))
        self.roles[user_id] = role
        self.granted_by[user_id] = granted_by


class MemoryMuteGateway(MuteGateway, _FailureInjection):
    def __init__(self) -> None:
        _FailureInjection.__init__(self)
        self.records: list[MuteRecord] = []

    async def insert(self, record: MuteRecord) -> MuteRecord:
        self._enter("insert", record.user_id)
        stored = replace(record, id=record.id or str(uuid4()))
        self.records.append(stored)
        return stored

    async def deactivate_active(self, user_id: str, at: datetime, by: str | None) -> int:
        self._enter("deactivate_active", user_id)
        changed = 0
        for index, record in enumerate(self.records):
            if record.user_id == user_id and record.active:
                self.records[index] = replace(record, active=False, unmuted_at=at, unmuted_by=by)
                changed += 1
        return changed

    async def list_for_user(self, user_id: str) -> list[MuteRecord]:
        self._enter("list_for_user", user_id)
        mine = [record for record in self.records if record.user_id == user_id]
        return sorted(mine, key=lambda r: r.muted_at, reverse=True)

    async def list_all(self) -> list[MuteRecord]:
        self._enter("list_all")
        return sorted(self.records, key=lambda r: r.muted_at, reverse=True)


class MemoryMediaSource(MediaSource):
    """Returns preset files; `camera=None` models a cancelled capture."""

    def __init__(self, gallery: list[Path] | None = None, camera: Path | None = None) -> None:
        self.gallery = list(gallery or [])
        self.camera = camera

    async def pick_images_from_gallery(self) -> list[Path]:
        return list(self.gallery)

    async def capture_image_with_camera(self) -> Path | None:
        return self.camera
