"""
Tier policy.

Maps tiers to base daily allowances and resolves the default tier from the
caller's auth context. Tier changes only ever move up: guest, registered, pro.
"""

from typing import Optional, Union

from quotaledger.config import get_tier_limits
from quotaledger.models import AuthContext, Tier


TIER_ORDER: dict[Tier, int] = {
    Tier.GUEST: 0,
    Tier.REGISTERED: 1,
    Tier.PRO: 2,
}


def parse_tier(value: Union[str, Tier, None]) -> Optional[Tier]:
    """Parse a stored tier value. Returns None for missing or unknown tiers."""
    if isinstance(value, Tier):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Tier(value.lower().strip())
    except ValueError:
        return None


def base_limit_for(tier: Union[str, Tier, None]) -> int:
    """Base daily allowance for a tier. Unknown tiers are treated as guest."""
    limits = get_tier_limits()
    parsed = parse_tier(tier) or Tier.GUEST
    return limits[parsed.value]


def pro_limit() -> int:
    return get_tier_limits()[Tier.PRO.value]


def default_tier_for(auth: Optional[AuthContext]) -> Tier:
    """Anonymous sessions are guests; any other provider is registered."""
    if auth is None or auth.is_anonymous:
        return Tier.GUEST
    return Tier.REGISTERED


def can_transition(current: Tier, target: Tier) -> bool:
    """Whether moving from current to target is an upgrade."""
    return TIER_ORDER[target] > TIER_ORDER[current]


def resolve_tier(
    stored: Union[str, Tier, None],
    default_tier: Tier,
    auth: Optional[AuthContext] = None,
) -> Tier:
    """
    Resolve the effective tier.

    Stored tier wins over the default. A live non-anonymous session lifts a
    guest to registered; nothing here ever lowers a tier.
    """
    tier = parse_tier(stored) or default_tier
    if tier == Tier.GUEST and auth is not None and not auth.is_anonymous:
        tier = Tier.REGISTERED
    return tier
