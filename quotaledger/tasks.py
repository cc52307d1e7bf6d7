"""
Task completion service.

Applies one task-completion event to a user's profile inside a single
transaction: read, mutate task progress, recompute boosts and limit, write.
"""

from datetime import datetime
from typing import Callable, Optional

from quotaledger.errors import Internal, ShareLimitReached, TaskAlreadyCompleted
from quotaledger.metrics import LedgerMetrics
from quotaledger.models import (
    PROFILE_COLLECTION,
    AuthContext,
    TaskId,
    UserProfile,
    date_key,
    utc_now,
)
from quotaledger.normalizer import build_document, compute_limits, normalize_profile
from quotaledger.rewards import max_shares_per_day
from quotaledger.storage import DocumentStore, InMemoryStorage
from quotaledger.tiers import default_tier_for
from quotaledger.transactions import RetryConfig, run_transaction
from quotaledger.validation import validate_count, validate_task_id, validate_user_id


ONE_TIME_TASKS = {
    TaskId.INSTAGRAM: "instagram_done",
    TaskId.THREADS: "threads_done",
}

REPEATABLE_TASKS = {
    TaskId.SUBMISSION: "submissions_approved",
    TaskId.INVITE: "invites_completed",
}


class TaskCompletionService:
    """
    Rewards user actions with extra daily quota.

    One-time tasks (instagram, threads) succeed exactly once. Repeatable
    tasks (submission, invite) add a permanent boost per unit. Shares add a
    same-day bonus up to the daily share cap.
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

    def complete_task(
        self,
        user_id: str,
        task_id: str,
        count: Optional[int] = None,
        auth: Optional[AuthContext] = None,
    ) -> UserProfile:
        """
        Complete a task for a user.

        Args:
            user_id: The user completing the task.
            task_id: One of instagram, threads, submission, invite, share.
            count: Units for submission/invite, coerced to max(1, floor(count)).
            auth: Caller auth context, used when the user has no profile yet.

        Returns:
            The updated profile.

        Raises:
            InvalidArgument: Unknown task id or malformed count.
            TaskAlreadyCompleted: One-time task completed before.
            ShareLimitReached: Daily share cap already reached.
            Internal: If the transaction could not commit.
        """
        user_id = validate_user_id(user_id)
        task = validate_task_id(task_id)
        amount = validate_count(count) if task in REPEATABLE_TASKS else 1
        now = self.clock()
        today = date_key(now)
        default_tier = default_tier_for(auth)

        def body(stored: Optional[dict]):
            # Normalizing applies the lazy share rollover inside this transaction.
            profile = normalize_profile(user_id, stored, default_tier, today, auth)
            tasks = profile.tasks

            if task in ONE_TIME_TASKS:
                field_name = ONE_TIME_TASKS[task]
                if getattr(tasks, field_name):
                    raise TaskAlreadyCompleted(user_id, task.value)
                setattr(tasks, field_name, True)
            elif task in REPEATABLE_TASKS:
                field_name = REPEATABLE_TASKS[task]
                setattr(tasks, field_name, getattr(tasks, field_name) + amount)
            else:
                max_shares = max_shares_per_day()
                if tasks.shares_today >= max_shares:
                    raise ShareLimitReached(user_id, tasks.shares_today, max_shares)
                tasks.shares_today += 1
                tasks.shares_recorded_at = today

            (
                profile.base_limit,
                profile.permanent_boost,
                profile.share_bonus,
                profile.daily_limit,
            ) = compute_limits(profile.tier, tasks, today)

            return build_document(stored, profile, now.isoformat()), profile

        try:
            profile = run_transaction(
                self.store,
                PROFILE_COLLECTION,
                user_id,
                body,
                retry=self.retry,
                on_retry=lambda attempt: self.metrics.record_retry(user_id, attempt),
            )
        except (TaskAlreadyCompleted, ShareLimitReached) as e:
            self.metrics.record_task_rejected(user_id, task.value, e.code)
            raise
        except Internal as e:
            self.metrics.record_error(user_id, e.code, e.message)
            raise

        self.metrics.record_task(user_id, task.value, profile.daily_limit)
        return profile
