"""User models: profiles, role assignments and auth sessions."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from katalog.types import UserProfile, UserRole


class UserProfileRow(BaseModel):
    """A user_profiles row joined with its user_roles entry."""

    id: UUID
    email: str
    full_name: str | None = None
    role: str | None = None
    created_at: datetime | None = None

    def to_entity(self) -> UserProfile:
        return UserProfile(
            id=str(self.id),
            email=self.email,
            full_name=self.full_name or "",
            role=UserRole.parse(self.role),
            created_at=self.created_at,
        )


class UserProfileWrite(BaseModel):
    model_config = {"extra": "forbid"}

    id: UUID | None = None
    email: str | None = Field(default=None, min_length=3)
    full_name: str | None = None

    def columns(self) -> dict[str, object]:
        return self.model_dump(exclude_unset=True)


class AuthSession(BaseModel):
    """Token response from the auth endpoint. Extra fields are ignored."""

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    user: dict = Field(default_factory=dict)
