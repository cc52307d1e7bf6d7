"""
Quota ledger.

Meters daily translation usage per user. Each consume is a compare-and-set
transaction on the user's usage document, so concurrent requests never
spend the same unit of headroom twice.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from quotaledger.errors import Internal, QuotaExceeded, QuotaNotConfigured
from quotaledger.metrics import LedgerMetrics
from quotaledger.models import (
    PROFILE_COLLECTION,
    USAGE_COLLECTION,
    AuthContext,
    QuotaResult,
    UsageSnapshot,
    date_key,
    utc_now,
)
from quotaledger.normalizer import coerce_count, normalize_profile
from quotaledger.storage import DocumentStore, InMemoryStorage
from quotaledger.tiers import default_tier_for
from quotaledger.transactions import RetryConfig, run_transaction
from quotaledger.validation import validate_date_key, validate_requested, validate_user_id

logger = logging.getLogger("quotaledger.ledger")


class QuotaLedger:
    """
    Check-and-consume gate for daily translation quota.

    Example:
        ```python
        ledger = QuotaLedger(store=SQLiteStorage("quotaledger.db"))

        result = ledger.check_and_consume("user_123")
        print(result.remaining)

        # Dry run, nothing is written
        ledger.check_only("user_123", requested=2)
        ```
    """

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

    def check_and_consume(
        self,
        user_id: str,
        requested: int = 1,
        auth: Optional[AuthContext] = None,
        request_id: Optional[str] = None,
    ) -> QuotaResult:
        """
        Consume `requested` units of today's quota.

        Args:
            user_id: The user making the translation.
            requested: Units to consume, coerced to max(1, floor(requested)).
            auth: Caller auth context, used when the user has no profile yet.
            request_id: Optional client-generated id. A repeat of an id that
                already committed today returns the first usage without
                consuming again.

        Returns:
            QuotaResult with the new usage and remaining headroom.

        Raises:
            QuotaNotConfigured: If the resolved limit is not positive.
            QuotaExceeded: If the request does not fit in today's limit.
            Internal: If the transaction could not commit.
        """
        return self._run(user_id, requested, auth, request_id, consume=True)

    def check_only(
        self,
        user_id: str,
        requested: int = 1,
        auth: Optional[AuthContext] = None,
    ) -> QuotaResult:
        """Same as check_and_consume, but never writes."""
        return self._run(user_id, requested, auth, None, consume=False)

    def get_usage(self, user_id: str, day: Optional[str] = None) -> UsageSnapshot:
        """Return the usage count for today (or a given YYYY-MM-DD day)."""
        user_id = validate_user_id(user_id)
        day = validate_date_key(day) if day is not None else date_key(self.clock())
        data, _ = self.store.get(USAGE_COLLECTION, user_id)
        data = data or {}
        counts = data.get("counts") or {}
        return UsageSnapshot(
            user_id=user_id,
            date_key=day,
            count=coerce_count(counts.get(day)),
            last_activity_at=data.get("last_activity_at"),
        )

    def _run(
        self,
        user_id: str,
        requested: int,
        auth: Optional[AuthContext],
        request_id: Optional[str],
        consume: bool,
    ) -> QuotaResult:
        user_id = validate_user_id(user_id)
        requested = validate_requested(requested)
        now = self.clock()
        today = date_key(now)
        default_tier = default_tier_for(auth)

        def body(usage: Optional[dict]):
            stored_profile, _ = self.store.get(PROFILE_COLLECTION, user_id)
            profile = normalize_profile(user_id, stored_profile, default_tier, today, auth)
            limit = profile.daily_limit
            if limit <= 0:
                raise QuotaNotConfigured(user_id, limit)

            usage = usage or {}
            counts = dict(usage.get("counts") or {})
            current = coerce_count(counts.get(today))

            seen = dict((usage.get("request_ids") or {}).get(today) or {})
            if request_id is not None and request_id in seen:
                replay = QuotaResult(
                    allowed=True,
                    limit=limit,
                    usage=coerce_count(seen[request_id]),
                    remaining=max(limit - current, 0),
                    requested=requested,
                    date_key=today,
                    consumed=False,
                    replayed=True,
                )
                return None, replay

            if current + requested > limit:
                raise QuotaExceeded(user_id, limit, current, requested)

            result = QuotaResult(
                allowed=True,
                limit=limit,
                usage=current + requested,
                remaining=limit - current - requested,
                requested=requested,
                date_key=today,
                consumed=consume,
            )
            if not consume:
                return None, result

            counts[today] = current + requested
            updated = {
                **usage,
                "user_id": user_id,
                "counts": counts,
                "last_activity_at": now.isoformat(),
            }
            if request_id is not None:
                seen[request_id] = current + requested
                # Only today's ids are kept; replays are scoped to one day.
                updated["request_ids"] = {today: seen}
            return updated, result

        try:
            result = run_transaction(
                self.store,
                USAGE_COLLECTION,
                user_id,
                body,
                retry=self.retry,
                on_retry=lambda attempt: self.metrics.record_retry(user_id, attempt),
            )
        except QuotaExceeded as e:
            self.metrics.record_quota_hit(user_id, e.limit, e.current_count, e.requested)
            raise
        except QuotaNotConfigured as e:
            self.metrics.record_error(user_id, e.code, e.message)
            raise
        except Internal as e:
            self.metrics.record_error(user_id, e.code, e.message)
            raise

        if result.replayed:
            logger.info("quota_replayed user_id=%s request_id=%s", user_id, request_id)
        else:
            self.metrics.record_consume(
                user_id, result.limit, result.usage, result.requested, result.consumed
            )
        return result
