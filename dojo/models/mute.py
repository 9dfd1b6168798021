"""Mute models."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from katalog.moderation import MuteRecord


class MuteRow(BaseModel):
    """Represents a row in the user_mutes table."""

    id: UUID
    user_id: UUID
    muted_until: datetime
    reason: str
    muted_at: datetime
    is_active: bool = True
    muted_by: UUID | None = None
    unmuted_at: datetime | None = None
    unmuted_by: UUID | None = None

    def to_record(self) -> MuteRecord:
        return MuteRecord(
            id=str(self.id),
            user_id=str(self.user_id),
            muted_until=self.muted_until,
            reason=self.reason,
            muted_at=self.muted_at,
            active=self.is_active,
            muted_by=str(self.muted_by) if self.muted_by else None,
            unmuted_at=self.unmuted_at,
            unmuted_by=str(self.unmuted_by) if self.unmuted_by else None,
        )
