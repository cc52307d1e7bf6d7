"""Global configuration for the quota ledger."""

from __future__ import annotations

import copy
import json
import os
from typing import Dict, Any


DEFAULT_TIER_LIMITS: Dict[str, int] = {
    "guest": 3,
    "registered": 10,
    "pro": 200,
}

DEFAULT_REWARDS: Dict[str, int] = {
    "task_reward": 5,
    "reward_per_share": 2,
    "daily_share_cap": 10,
}

DEFAULT_DB_PATH = "quotaledger.db"

_tier_limits: Dict[str, int] = copy.deepcopy(DEFAULT_TIER_LIMITS)
_rewards: Dict[str, int] = copy.deepcopy(DEFAULT_REWARDS)


def _parse_json_env(var_name: str) -> Dict[str, Any] | None:
    value = os.getenv(var_name)
    if not value:
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


def _parse_int_env(var_name: str) -> int | None:
    value = os.getenv(var_name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _validate_tier_limits(limits: Dict[str, int]) -> None:
    for tier in ("guest", "registered", "pro"):
        value = limits.get(tier)
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise ValueError(f"limit for {tier} must be a positive integer")
    if not limits["guest"] < limits["registered"] < limits["pro"]:
        raise ValueError("tier limits must satisfy guest < registered < pro")


def _validate_rewards(rewards: Dict[str, int]) -> None:
    for key in ("task_reward", "reward_per_share", "daily_share_cap"):
        value = rewards.get(key)
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ValueError(f"{key} must be a non-negative integer")
    if rewards["reward_per_share"] == 0:
        raise ValueError("reward_per_share must be positive")


def get_tier_limits() -> Dict[str, int]:
    """Return base daily limits per tier, with optional env overrides."""
    parsed = _parse_json_env("QUOTALEDGER_TIER_LIMITS_JSON")
    if parsed:
        merged = {**_tier_limits, **parsed}
        try:
            _validate_tier_limits(merged)
        except ValueError:
            return dict(_tier_limits)
        return merged

    limits = dict(_tier_limits)
    guest = _parse_int_env("DAILY_TRANSLATION_LIMIT")
    registered = _parse_int_env("REGISTERED_TRANSLATION_LIMIT")
    if guest is not None:
        limits["guest"] = guest
    if registered is not None:
        limits["registered"] = registered
    return limits


def set_tier_limits(limits: Dict[str, int]) -> None:
    """Set tier limits at runtime."""
    global _tier_limits
    if not isinstance(limits, dict) or not limits:
        raise ValueError("limits must be a non-empty dict")
    merged = {**_tier_limits, **limits}
    _validate_tier_limits(merged)
    _tier_limits = merged


def get_rewards() -> Dict[str, int]:
    """Return reward constants, with optional env override."""
    parsed = _parse_json_env("QUOTALEDGER_REWARDS_JSON")
    if parsed:
        merged = {**_rewards, **parsed}
        try:
            _validate_rewards(merged)
        except ValueError:
            return dict(_rewards)
        return merged
    return dict(_rewards)


def set_rewards(
    *,
    task_reward: int | None = None,
    reward_per_share: int | None = None,
    daily_share_cap: int | None = None,
) -> None:
    """Set reward constants at runtime."""
    global _rewards
    updated = copy.deepcopy(_rewards)
    if task_reward is not None:
        updated["task_reward"] = task_reward
    if reward_per_share is not None:
        updated["reward_per_share"] = reward_per_share
    if daily_share_cap is not None:
        updated["daily_share_cap"] = daily_share_cap
    _validate_rewards(updated)
    _rewards = updated


def get_db_path() -> str:
    return os.getenv("QUOTALEDGER_DB_PATH", DEFAULT_DB_PATH)


def reset_config() -> None:
    """Restore default limits and rewards."""
    global _tier_limits, _rewards
    _tier_limits = copy.deepcopy(DEFAULT_TIER_LIMITS)
    _rewards = copy.deepcopy(DEFAULT_REWARDS)
