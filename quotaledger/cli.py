"""
Command-line interface for the quota ledger.

Provides commands for:
- Consuming and checking quota
- Inspecting usage and profiles
- Completing tasks and upgrading tiers
"""

import argparse
import json
import sys
from typing import Optional

from quotaledger.config import get_db_path, get_rewards, get_tier_limits
from quotaledger.errors import LedgerError
from quotaledger.models import AuthContext, TaskId, Tier
from quotaledger.rewards import max_shares_per_day
from quotaledger.services import LedgerServices, open_sqlite


def _auth(args) -> AuthContext:
    return AuthContext(user_id=args.user_id, provider=args.provider)


def _print(payload: dict) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def cmd_consume(services: LedgerServices, args) -> dict:
    """Consume quota for one translation."""
    result = services.quota.check_and_consume(
        args.user_id,
        requested=args.requested,
        auth=_auth(args),
        request_id=args.request_id,
    )
    return result.to_dict()


def cmd_check(services: LedgerServices, args) -> dict:
    """Check quota without consuming."""
    return services.quota.check_only(
        args.user_id, requested=args.requested, auth=_auth(args)
    ).to_dict()


def cmd_usage(services: LedgerServices, args) -> dict:
    """Show usage for today or a given day."""
    return services.quota.get_usage(args.user_id, day=args.date).to_dict()


def cmd_profile(services: LedgerServices, args) -> dict:
    """Ensure the profile exists and show it."""
    return services.profiles.ensure_profile(args.user_id, _auth(args)).to_dict()


def cmd_task(services: LedgerServices, args) -> dict:
    """Complete a task."""
    return services.tasks.complete_task(
        args.user_id, args.task_id, count=args.count, auth=_auth(args)
    ).to_dict()


def cmd_upgrade(services: LedgerServices, args) -> dict:
    """Upgrade a user's tier."""
    return services.profiles.upgrade_tier(args.user_id, args.tier, auth=_auth(args)).to_dict()


def cmd_limits(services: LedgerServices, args) -> dict:
    """Show the configured tier limits and rewards."""
    return {
        "tier_limits": get_tier_limits(),
        "rewards": get_rewards(),
        "max_shares_per_day": max_shares_per_day(),
    }


def _add_user_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("user_id", help="User identifier")
    parser.add_argument("--provider", default="anonymous",
                        help="Sign-in provider of the session (anonymous = guest)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quotaledger",
        description="Quota Ledger - daily translation quota with task rewards",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Consume one translation for a guest
  quotaledger consume user_123

  # Complete a task as a registered user
  quotaledger task user_123 instagram --provider google.com

  # Show today's usage
  quotaledger usage user_123
""",
    )
    parser.add_argument("--db", default=None,
                        help="SQLite database path (default: $QUOTALEDGER_DB_PATH or quotaledger.db)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    consume_parser = subparsers.add_parser("consume", help="Consume quota")
    _add_user_args(consume_parser)
    consume_parser.add_argument("--requested", "-n", type=int, default=1,
                                help="Units to consume")
    consume_parser.add_argument("--request-id",
                                help="Idempotency key for retries")

    check_parser = subparsers.add_parser("check", help="Check quota without consuming")
    _add_user_args(check_parser)
    check_parser.add_argument("--requested", "-n", type=int, default=1)

    usage_parser = subparsers.add_parser("usage", help="Show usage")
    usage_parser.add_argument("user_id")
    usage_parser.add_argument("--date", help="Day to show (YYYY-MM-DD, UTC)")

    profile_parser = subparsers.add_parser("profile", help="Ensure and show a profile")
    _add_user_args(profile_parser)

    task_parser = subparsers.add_parser("task", help="Complete a task")
    _add_user_args(task_parser)
    task_parser.add_argument("task_id", choices=[t.value for t in TaskId])
    task_parser.add_argument("--count", type=int, default=None,
                             help="Units for submission/invite tasks")

    upgrade_parser = subparsers.add_parser("upgrade", help="Upgrade a user's tier")
    _add_user_args(upgrade_parser)
    upgrade_parser.add_argument("tier", choices=[t.value for t in Tier])

    subparsers.add_parser("limits", help="Show configured limits and rewards")

    return parser


COMMANDS = {
    "consume": cmd_consume,
    "check": cmd_check,
    "usage": cmd_usage,
    "profile": cmd_profile,
    "task": cmd_task,
    "upgrade": cmd_upgrade,
    "limits": cmd_limits,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    services = open_sqlite(args.db or get_db_path())
    try:
        payload = COMMANDS[args.command](services, args)
    except LedgerError as e:
        _print({"error": e.to_dict()})
        return 1
    finally:
        services.close()

    _print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
