"""
Profile sync.

Ensures a user's profile exists and matches its normalized form. Safe to
call on every session start; nothing is written when nothing changed.
"""

import logging
from datetime import datetime
from typing import Callable, Optional, Union

from quotaledger.errors import Internal, InvalidArgument
from quotaledger.metrics import LedgerMetrics
from quotaledger.models import PROFILE_COLLECTION, AuthContext, Tier, UserProfile, date_key, utc_now
from quotaledger.normalizer import build_document, changed_fields, compute_limits, normalize_profile
from quotaledger.storage import DocumentStore, InMemoryStorage
from quotaledger.tiers import can_transition, default_tier_for, parse_tier
from quotaledger.transactions import RetryConfig, run_transaction
from quotaledger.validation import validate_user_id

logger = logging.getLogger("quotaledger.profiles")


class ProfileService:
    """Creates, syncs, and upgrades user profiles."""

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        metrics: Optional[LedgerMetrics] = None,
        retry: Optional[RetryConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store or InMemoryStorage()
        self.metrics = metrics or LedgerMetrics()
        self.retry = retry or RetryConfig()
        self.clock = clock or utc_now

    def _transact(self, user_id: str, body):
        try:
            return run_transaction(
                self.store,
                PROFILE_COLLECTION,
                user_id,
                body,
                retry=self.retry,
                on_retry=lambda attempt: self.metrics.record_retry(user_id, attempt),
            )
        except Internal as e:
            self.metrics.record_error(user_id, e.code, e.message)
            raise

    def get_profile(self, user_id: str, auth: Optional[AuthContext] = None) -> UserProfile:
        """Normalized view of the stored profile. Never writes."""
        user_id = validate_user_id(user_id)
        stored, _ = self.store.get(PROFILE_COLLECTION, user_id)
        return normalize_profile(
            user_id, stored, default_tier_for(auth), date_key(self.clock()), auth
        )

    def ensure_profile(self, user_id: str, auth: Optional[AuthContext] = None) -> UserProfile:
        """
        Create or refresh a user's profile.

        Missing or stale fields (tier, derived limits, rolled-over share
        counters) are written back; an up-to-date profile is left untouched.

        Args:
            user_id: The user starting a session.
            auth: Caller auth context.

        Returns:
            The normalized profile.
        """
        user_id = validate_user_id(user_id)
        now = self.clock()
        today = date_key(now)
        default_tier = default_tier_for(auth)

        def body(stored: Optional[dict]):
            profile = normalize_profile(user_id, stored, default_tier, today, auth)
            diff = changed_fields(stored, profile)
            if not diff:
                return None, (profile, [])
            return build_document(stored, profile, now.isoformat()), (profile, sorted(diff))

        profile, written = self._transact(user_id, body)

        self.metrics.record_profile_sync(user_id, profile.tier.value, written)
        if written:
            logger.info(
                "ensure_profile_written user_id=%s tier=%s fields=%s",
                user_id, profile.tier.value, ",".join(written),
            )
        return profile

    def upgrade_tier(
        self,
        user_id: str,
        target: Union[str, Tier],
        auth: Optional[AuthContext] = None,
    ) -> UserProfile:
        """
        Move a user to a higher tier.

        Raises:
            InvalidArgument: Unknown tier, or target not above the current tier.
        """
        user_id = validate_user_id(user_id)
        target_tier = parse_tier(target)
        if target_tier is None:
            raise InvalidArgument(f"Unknown tier: {target!r}")
        now = self.clock()
        today = date_key(now)
        default_tier = default_tier_for(auth)

        def body(stored: Optional[dict]):
            profile = normalize_profile(user_id, stored, default_tier, today, auth)
            if not can_transition(profile.tier, target_tier):
                raise InvalidArgument(
                    f"Cannot change tier from {profile.tier.value} to {target_tier.value}",
                    current_tier=profile.tier.value,
                    target_tier=target_tier.value,
                )
            profile.tier = target_tier
            (
                profile.base_limit,
                profile.permanent_boost,
                profile.share_bonus,
                profile.daily_limit,
            ) = compute_limits(target_tier, profile.tasks, today)
            return build_document(stored, profile, now.isoformat()), profile

        profile = self._transact(user_id, body)
        logger.info("tier_upgraded user_id=%s tier=%s", user_id, profile.tier.value)
        return profile
