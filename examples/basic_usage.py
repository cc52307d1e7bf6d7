"""
Basic usage examples for Quota Ledger.

Walks a user from a guest session through task rewards and a new day.
"""

from quotaledger import (
    AuthContext,
    FixedClock,
    QuotaExceeded,
    ShareLimitReached,
    TaskAlreadyCompleted,
    build_services,
)


def example_guest_quota():
    """Guest metering."""
    print("=" * 60)
    print("Example 1: Guest Quota")
    print("=" * 60)

    services = build_services()
    guest = AuthContext(user_id="guest_42")

    for _ in range(3):
        result = services.quota.check_and_consume("guest_42", auth=guest)
        print(f"Used {result.usage}/{result.limit}, {result.remaining} left")

    try:
        services.quota.check_and_consume("guest_42", auth=guest)
    except QuotaExceeded as e:
        print(f"Blocked: {e.details()}")
    print()


def example_task_rewards():
    """Raising the limit with tasks."""
    print("=" * 60)
    print("Example 2: Task Rewards")
    print("=" * 60)

    services = build_services()
    member = AuthContext(user_id="member_7", provider="google.com")

    profile = services.profiles.ensure_profile("member_7", member)
    print(f"Tier: {profile.tier.value}, daily limit: {profile.daily_limit}")

    profile = services.tasks.complete_task("member_7", "instagram", auth=member)
    print(f"After instagram follow: {profile.daily_limit}")

    try:
        services.tasks.complete_task("member_7", "instagram", auth=member)
    except TaskAlreadyCompleted as e:
        print(f"Rejected: {e.message}")

    profile = services.tasks.complete_task("member_7", "submission", count=2, auth=member)
    print(f"After two approved submissions: {profile.daily_limit}")
    print()


def example_daily_shares():
    """Share bonus and the daily rollover."""
    print("=" * 60)
    print("Example 3: Daily Shares")
    print("=" * 60)

    clock = FixedClock()
    services = build_services(clock=clock)
    member = AuthContext(user_id="member_9", provider="password")

    while True:
        try:
            profile = services.tasks.complete_task("member_9", "share", auth=member)
        except ShareLimitReached as e:
            print(f"Share cap reached: {e.details()}")
            break
        print(f"Shares today: {profile.tasks.shares_today}, bonus: {profile.share_bonus}")

    clock.advance(days=1)
    profile = services.profiles.get_profile("member_9", member)
    print(f"Next day bonus: {profile.share_bonus}, limit: {profile.daily_limit}")
    print()


if __name__ == "__main__":
    example_guest_quota()
    example_task_rewards()
    example_daily_shares()
