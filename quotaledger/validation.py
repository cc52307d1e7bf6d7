"""
Input validation for the quota ledger.

Validates caller inputs before any storage access.
"""

import math
import re
from datetime import date
from typing import Any, Optional

from quotaledger.errors import InvalidArgument, Unauthenticated
from quotaledger.models import TaskId


MAX_USER_ID_LENGTH = 128
MAX_REQUESTED = 1_000
MAX_TASK_COUNT = 100

_DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def validate_user_id(user_id: Any) -> str:
    """
    Validate a caller identity.

    Raises:
        Unauthenticated: If the id is missing or blank
        InvalidArgument: If the id is malformed
    """
    if user_id is None or (isinstance(user_id, str) and not user_id.strip()):
        raise Unauthenticated("Authentication is required")

    if not isinstance(user_id, str):
        raise InvalidArgument(f"user_id must be a string, got {type(user_id).__name__}")

    if len(user_id) > MAX_USER_ID_LENGTH or "/" in user_id:
        raise InvalidArgument(f"user_id is malformed: {user_id[:32]!r}")

    return user_id


def _positive_floor(value: Any, name: str, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgument(f"{name} must be a number, got {type(value).__name__}")

    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidArgument(f"{name} must be finite, got {value}")

    amount = max(1, int(math.floor(value)))
    if amount > maximum:
        raise InvalidArgument(f"{name} too large: {amount:,} (max: {maximum:,})")
    return amount


def validate_requested(requested: Any) -> int:
    """Coerce a requested unit count to max(1, floor(requested))."""
    if requested is None:
        return 1
    return _positive_floor(requested, "requested", MAX_REQUESTED)


def validate_count(count: Optional[Any]) -> int:
    """Coerce a repeatable task count to max(1, floor(count))."""
    if count is None:
        return 1
    return _positive_floor(count, "count", MAX_TASK_COUNT)


def validate_task_id(task_id: Any) -> TaskId:
    if not isinstance(task_id, (str, TaskId)) or not str(task_id).strip():
        raise InvalidArgument("task_id is required")
    try:
        return TaskId(task_id)
    except ValueError:
        raise InvalidArgument(f"Unknown task_id: {task_id!r}", task_id=str(task_id))


def validate_date_key(value: Any) -> str:
    if not isinstance(value, str) or not _DATE_KEY_RE.match(value):
        raise InvalidArgument(f"date key must be YYYY-MM-DD, got {value!r}")
    try:
        date.fromisoformat(value)
    except ValueError:
        raise InvalidArgument(f"date key is not a valid date: {value!r}")
    return value
