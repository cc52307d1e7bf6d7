"""
Error taxonomy for the quota ledger.

Business outcomes (QuotaExceeded, TaskAlreadyCompleted, ShareLimitReached)
carry structured details so callers can render the right message.
"""

from typing import Any, Optional


class LedgerError(Exception):
    """Base class for all errors surfaced to callers."""
    code = "internal"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self._details = details

    def details(self) -> dict[str, Any]:
        """Machine-readable detail payload."""
        return dict(self._details)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details(),
        }


class Unauthenticated(LedgerError):
    """No valid caller identity."""
    code = "unauthenticated"


class InvalidArgument(LedgerError, ValueError):
    """Malformed task id, count, or request parameter."""
    code = "invalid_argument"


class QuotaNotConfigured(LedgerError):
    """The resolved daily limit is zero or negative."""
    code = "quota_not_configured"

    def __init__(self, user_id: str, limit: int):
        super().__init__(
            f"Quota limit is not configured for user '{user_id}' (limit={limit})",
            user_id=user_id,
            limit=limit,
        )


class QuotaExceeded(LedgerError):
    """Raised when a consume would push today's usage past the limit."""
    code = "quota_exceeded"

    def __init__(self, user_id: str, limit: int, current_count: int, requested: int):
        self.user_id = user_id
        self.limit = limit
        self.current_count = current_count
        self.requested = requested
        self.remaining = max(limit - current_count, 0)
        super().__init__(
            f"User '{user_id}' exceeded daily quota: "
            f"{current_count} of {limit} used, {requested} requested"
        )

    def details(self) -> dict[str, Any]:
        return {
            "limit": self.limit,
            "current_count": self.current_count,
            "remaining": self.remaining,
            "requested": self.requested,
        }


class TaskAlreadyCompleted(LedgerError):
    """A one-time task was completed before."""
    code = "task_already_completed"

    def __init__(self, user_id: str, task_id: str):
        super().__init__(
            f"Task '{task_id}' was already completed by user '{user_id}'",
            task_id=task_id,
        )


class ShareLimitReached(LedgerError):
    """The daily share reward cap has been reached."""
    code = "share_limit_reached"

    def __init__(self, user_id: str, shares_today: int, max_shares: int):
        super().__init__(
            f"User '{user_id}' reached the daily share limit ({max_shares})",
            shares_today=shares_today,
            max_shares=max_shares,
        )


class Internal(LedgerError):
    """Storage or transaction failure after exhausting retries."""
    code = "internal"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class TransientStorageError(Exception):
    """Retryable storage failure (lock contention, busy database)."""
    pass
