"""Task reward model. Pure functions over a TaskProgress snapshot."""

import math
from typing import Optional

from quotaledger.config import get_rewards
from quotaledger.models import TaskProgress


def permanent_boost(tasks: Optional[TaskProgress]) -> int:
    """Permanent daily-limit boost earned from one-time and repeatable tasks."""
    if tasks is None:
        return 0
    reward = get_rewards()["task_reward"]
    units = (
        int(bool(tasks.instagram_done))
        + int(bool(tasks.threads_done))
        + max(tasks.submissions_approved, 0)
        + max(tasks.invites_completed, 0)
    )
    return reward * units


def share_bonus(tasks: Optional[TaskProgress], today: str) -> int:
    """Today's share bonus, capped. Counters from another day count as zero."""
    if tasks is None or tasks.shares_recorded_at != today:
        return 0
    rewards = get_rewards()
    shares = max(tasks.shares_today, 0)
    return min(shares * rewards["reward_per_share"], rewards["daily_share_cap"])


def max_shares_per_day() -> int:
    """Shares accepted per day; the last one may be only partly rewarded."""
    rewards = get_rewards()
    return math.ceil(rewards["daily_share_cap"] / rewards["reward_per_share"])
