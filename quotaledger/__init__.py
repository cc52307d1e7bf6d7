"""
Quota Ledger - fair daily translation quota with task rewards.

Metering:
    from quotaledger import QuotaLedger, QuotaExceeded

    ledger = QuotaLedger()
    try:
        result = ledger.check_and_consume("user_123")
        print(result.remaining)
    except QuotaExceeded as e:
        print(e.details())   # {"limit": 3, "current_count": 3, "remaining": 0, ...}

Rewards:
    from quotaledger import build_services, AuthContext

    services = build_services()
    auth = AuthContext(user_id="user_123", provider="google.com")
    services.profiles.ensure_profile("user_123", auth)
    profile = services.tasks.complete_task("user_123", "instagram", auth=auth)
    print(profile.daily_limit)   # 10 + 5

Persistence:
    from quotaledger import open_sqlite

    services = open_sqlite("quotaledger.db")
"""

from quotaledger.config import (
    get_tier_limits,
    set_tier_limits,
    get_rewards,
    set_rewards,
    reset_config,
)
from quotaledger.errors import (
    LedgerError,
    Unauthenticated,
    InvalidArgument,
    QuotaNotConfigured,
    QuotaExceeded,
    TaskAlreadyCompleted,
    ShareLimitReached,
    Internal,
)
from quotaledger.models import (
    AuthContext,
    QuotaResult,
    TaskId,
    TaskProgress,
    Tier,
    UsageSnapshot,
    UserProfile,
)
from quotaledger.ledger import QuotaLedger
from quotaledger.tasks import TaskCompletionService
from quotaledger.profiles import ProfileService
from quotaledger.services import LedgerServices, build_services, open_sqlite
from quotaledger.storage import InMemoryStorage, SQLiteStorage
from quotaledger.transactions import RetryConfig
from quotaledger.clock import FixedClock


__version__ = "1.0.0"
__all__ = [
    # Config
    "get_tier_limits",
    "set_tier_limits",
    "get_rewards",
    "set_rewards",
    "reset_config",
    # Errors
    "LedgerError",
    "Unauthenticated",
    "InvalidArgument",
    "QuotaNotConfigured",
    "QuotaExceeded",
    "TaskAlreadyCompleted",
    "ShareLimitReached",
    "Internal",
    # Models
    "AuthContext",
    "QuotaResult",
    "TaskId",
    "TaskProgress",
    "Tier",
    "UsageSnapshot",
    "UserProfile",
    # Services
    "QuotaLedger",
    "TaskCompletionService",
    "ProfileService",
    "LedgerServices",
    "build_services",
    "open_sqlite",
    # Storage
    "InMemoryStorage",
    "SQLiteStorage",
    "RetryConfig",
    "FixedClock",
]
