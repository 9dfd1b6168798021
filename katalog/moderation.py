"""
Katalog: Moderation

Role checks and time-bounded user mutes. Mute expiry is evaluated lazily
against a supplied clock; nothing runs in the background.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from katalog.errors import PermissionDenied, ValidationError
from katalog.gateway import MuteGateway, RoleGateway
from katalog.types import AuthUser, UserRole, now_utc

logger = logging.getLogger(__name__)


def can_moderate(role: UserRole) -> bool:
    return role in (UserRole.MODERATOR, UserRole.ADMIN)


def can_assign_roles(role: UserRole) -> bool:
    return role == UserRole.ADMIN


class MuteDuration(Enum):
    ONE_DAY = (timedelta(days=1), "1 Day")
    THREE_DAYS = (timedelta(days=3), "3 Days")
    ONE_WEEK = (timedelta(days=7), "1 Week")
    ONE_MONTH = (timedelta(days=30), "1 Month")
    THREE_MONTHS = (timedelta(days=90), "3 Months")
    SIX_MONTHS = (timedelta(days=180), "6 Months")
    ONE_YEAR = (timedelta(days=365), "1 Year")

    @property
    def delta(self) -> timedelta:
        return self.value[0]

    @property
    def display_name(self) -> str:
        return self.value[1]


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


@dataclass
class MuteRecord:
    user_id: str
    muted_until: datetime
    reason: str
    muted_at: datetime
    active: bool = True
    muted_by: str | None = None
    unmuted_at: datetime | None = None
    unmuted_by: str | None = None
    id: str | None = None

    def is_active(self, now: datetime | None = None) -> bool:
        """Active flag set and the deadline still ahead."""
        now = now or now_utc()
        return self.active and self.muted_until > now

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or now_utc()
        return now >= self.muted_until

    def time_remaining(self, now: datetime | None = None) -> timedelta:
        now = now or now_utc()
        if self.is_expired(now):
            return timedelta(0)
        return self.muted_until - now

    def time_remaining_text(self, now: datetime | None = None) -> str:
        if self.is_expired(now):
            return "Expired"
        remaining = self.time_remaining(now)
        if remaining.days > 0:
            return _plural(remaining.days, "day")
        hours = remaining.seconds // 3600
        if hours > 0:
            return _plural(hours, "hour")
        minutes = remaining.seconds // 60
        if minutes > 0:
            return _plural(minutes, "minute")
        return "Less than a minute"


class ModerationService:
    """
    Mutes and role assignments.

    The acting user's role is looked up through the role gateway on every
    call; a stale client-side role never grants permissions.
    """

    def __init__(self, mutes: MuteGateway, roles: RoleGateway) -> None:
        self._mutes = mutes
        self._roles = roles

    async def _require(self, actor: AuthUser, check, action: str) -> None:
        role = await self._roles.get_role(actor.id)
        if not check(role):
            raise PermissionDenied(f"Role '{role.value}' may not {action}")

    # -- mutes --

    async def mute_user(
        self,
        actor: AuthUser,
        user_id: str,
        duration: MuteDuration,
        reason: str,
        now: datetime | None = None,
    ) -> MuteRecord:
        if not reason.strip():
            raise ValidationError("A mute needs a reason")
        await self._require(actor, can_moderate, "mute users")

        now = now or now_utc()
        # one active mute per user: close the previous one first
        await self._mutes.deactivate_active(user_id, now, actor.id)
        record = await self._mutes.insert(
            MuteRecord(
                user_id=user_id,
                muted_until=now + duration.delta,
                reason=reason.strip(),
                muted_at=now,
                muted_by=actor.id,
            )
        )
        logger.info("moderation: muted user %s until %s", user_id, record.muted_until.isoformat())
        return record

    async def unmute_user(self, actor: AuthUser, user_id: str, now: datetime | None = None) -> bool:
        await self._require(actor, can_moderate, "unmute users")
        changed = await self._mutes.deactivate_active(user_id, now or now_utc(), actor.id)
        logger.info("moderation: unmuted user %s (%d records)", user_id, changed)
        return changed > 0

    async def current_mute(self, user_id: str, now: datetime | None = None) -> MuteRecord | None:
        now = now or now_utc()
        for record in await self._mutes.list_for_user(user_id):
            if record.is_active(now):
                return record
        return None

    async def is_muted(self, user_id: str, now: datetime | None = None) -> bool:
        return await self.current_mute(user_id, now) is not None

    async def mute_history(self, user_id: str) -> list[MuteRecord]:
        return await self._mutes.list_for_user(user_id)

    async def active_mutes(self, now: datetime | None = None) -> list[MuteRecord]:
        now = now or now_utc()
        return [record for record in await self._mutes.list_all() if record.is_active(now)]

    async def mute_statistics(self, now: datetime | None = None) -> dict[str, int]:
        now = now or now_utc()
        records = await self._mutes.list_all()
        day_ago = now - timedelta(days=1)
        return {
            "active": sum(1 for r in records if r.is_active(now)),
            "total": len(records),
            "expired_today": sum(
                1
                for r in records
                if (r.unmuted_at is not None and r.unmuted_at >= day_ago)
                or (r.active and day_ago <= r.muted_until <= now)
            ),
        }

    # -- roles --

    async def role_of(self, user_id: str) -> UserRole:
        return await self._roles.get_role(user_id)

    async def assign_role(self, actor: AuthUser, user_id: str, role: UserRole) -> None:
        await self._require(actor, can_assign_roles, "assign roles")
        await self._roles.set_role(user_id, role, actor.id)
        logger.info("moderation: user %s is now %s", user_id, role.value)
