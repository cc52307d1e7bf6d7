"""Shared data models."""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


PROFILE_COLLECTION = "profile"
USAGE_COLLECTION = "usage"


class Tier(str, Enum):
    """User tiers, ordered from least to most privileged."""
    GUEST = "guest"
    REGISTERED = "registered"
    PRO = "pro"


class TaskId(str, Enum):
    """Rewardable user actions."""
    INSTAGRAM = "instagram"
    THREADS = "threads"
    SUBMISSION = "submission"
    INVITE = "invite"
    SHARE = "share"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def date_key(moment: datetime) -> str:
    """ISO calendar date (YYYY-MM-DD) of a moment, in UTC."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date().isoformat()


@dataclass(frozen=True)
class AuthContext:
    """Caller identity as supplied by the auth layer."""
    user_id: str
    provider: str = "anonymous"

    @property
    def is_anonymous(self) -> bool:
        return not self.provider or self.provider == "anonymous"


@dataclass
class TaskProgress:
    """Snapshot of a user's task progress."""
    instagram_done: bool = False
    threads_done: bool = False
    submissions_approved: int = 0
    invites_completed: int = 0
    shares_today: int = 0
    shares_recorded_at: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class UserProfile:
    """Normalized user profile with derived limits."""
    user_id: str
    tier: Tier
    base_limit: int
    tasks: TaskProgress = field(default_factory=TaskProgress)
    permanent_boost: int = 0
    share_bonus: int = 0
    daily_limit: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Document form, as persisted under profile/{user_id}."""
        return {
            "user_id": self.user_id,
            "tier": self.tier.value,
            "base_limit": self.base_limit,
            "tasks": self.tasks.to_dict(),
            "permanent_boost": self.permanent_boost,
            "share_bonus": self.share_bonus,
            "daily_limit": self.daily_limit,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class QuotaResult:
    """Outcome of a successful quota check or consume."""
    allowed: bool
    limit: int
    usage: int
    remaining: int
    requested: int
    date_key: str
    consumed: bool = False
    replayed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class UsageSnapshot:
    """Today's usage for a user."""
    user_id: str
    date_key: str
    count: int
    last_activity_at: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
