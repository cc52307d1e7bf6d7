"""
Profile normalizer.

Turns a possibly stale or partial stored profile into a consistent
UserProfile. Boosts and bonuses are always recomputed from the raw task
progress. A stored daily limit is kept only as a floor: a non-pro limit is
the larger of the stored value and what tier and tasks justify.
"""

import logging
import math
from typing import Any, Optional

from quotaledger.models import AuthContext, TaskProgress, Tier, UserProfile
from quotaledger.rewards import permanent_boost, share_bonus
from quotaledger.tiers import base_limit_for, pro_limit, resolve_tier

logger = logging.getLogger("quotaledger.normalizer")

# Field names used by older profile documents.
_LEGACY_TASK_FIELDS = {
    "instagram": "instagram_done",
    "threads": "threads_done",
    "submissionsApproved": "submissions_approved",
    "invitesCompleted": "invites_completed",
    "sharesToday": "shares_today",
    "sharesRecordedAt": "shares_recorded_at",
}


def coerce_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return max(int(math.floor(value)), 0)


def _coerce_limit(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)


def normalize_tasks(raw: Optional[dict], today: str) -> TaskProgress:
    """Merge stored task progress over defaults and apply the lazy share rollover."""
    data: dict[str, Any] = {}
    if isinstance(raw, dict):
        for key, value in raw.items():
            data[_LEGACY_TASK_FIELDS.get(key, key)] = value

    recorded_at = data.get("shares_recorded_at")
    shares_fresh = isinstance(recorded_at, str) and recorded_at == today

    return TaskProgress(
        instagram_done=data.get("instagram_done") is True,
        threads_done=data.get("threads_done") is True,
        submissions_approved=coerce_count(data.get("submissions_approved")),
        invites_completed=coerce_count(data.get("invites_completed")),
        shares_today=coerce_count(data.get("shares_today")) if shares_fresh else 0,
        shares_recorded_at=today if shares_fresh else None,
    )


def compute_limits(tier: Tier, tasks: TaskProgress, today: str) -> tuple[int, int, int, int]:
    """Return (base_limit, permanent_boost, share_bonus, daily_limit)."""
    boost = permanent_boost(tasks)
    bonus = share_bonus(tasks, today)
    if tier == Tier.PRO:
        base = pro_limit()
        return base, boost, bonus, base
    base = base_limit_for(tier)
    return base, boost, bonus, base + boost + bonus


def normalize_profile(
    user_id: str,
    stored: Optional[dict],
    default_tier: Tier,
    today: str,
    auth: Optional[AuthContext] = None,
) -> UserProfile:
    """
    Build a normalized profile from a stored document.

    Args:
        user_id: Owner of the profile.
        stored: Stored profile document, or None if absent.
        default_tier: Tier to use when the document has none.
        today: Today's date key (YYYY-MM-DD, UTC).
        auth: Live auth context, used for the guest to registered upgrade.

    Returns:
        A UserProfile whose boosts match its task progress and whose
        daily limit is never below the stored one (pro excepted).
    """
    stored = stored if isinstance(stored, dict) else {}

    tier = resolve_tier(stored.get("tier"), default_tier, auth)
    tasks = normalize_tasks(stored.get("tasks"), today)
    base, boost, bonus, daily_limit = compute_limits(tier, tasks, today)

    stored_limit = _coerce_limit(stored.get("daily_limit"))
    if tier != Tier.PRO and stored_limit is not None and stored_limit != daily_limit:
        logger.debug(
            "daily_limit_reconciled user_id=%s stored=%s computed=%s",
            user_id, stored_limit, daily_limit,
        )
        daily_limit = max(stored_limit, daily_limit)

    return UserProfile(
        user_id=user_id,
        tier=tier,
        base_limit=base,
        tasks=tasks,
        permanent_boost=boost,
        share_bonus=bonus,
        daily_limit=daily_limit,
        created_at=stored.get("created_at"),
        updated_at=stored.get("updated_at"),
    )


def changed_fields(stored: Optional[dict], profile: UserProfile) -> dict[str, Any]:
    """Profile fields that are missing from or differ in the stored document."""
    stored = stored if isinstance(stored, dict) else {}
    desired = profile.to_dict()
    desired.pop("updated_at")
    return {key: value for key, value in desired.items() if stored.get(key) != value}


def build_document(stored: Optional[dict], profile: UserProfile, now_iso: str) -> dict[str, Any]:
    """Stored document with the profile's fields written over it, timestamps stamped."""
    if not profile.created_at:
        profile.created_at = now_iso
    profile.updated_at = now_iso
    base = stored if isinstance(stored, dict) else {}
    return {**base, **profile.to_dict()}
