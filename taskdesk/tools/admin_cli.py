"""
Admin CLI tool for TaskDesk.

This tool manages a local TaskDesk database without the HTTP API:
- init: Create the schema and run start-up seeding
- stats: Show live and soft-deleted row counts
- accounts: List accounts with their roles and lockout state
- set-role: Give an account exactly one role
- block / unblock: Lock an account indefinitely or clear its lockout

Usage:
    taskdesk-admin init
    taskdesk-admin stats --format json
    taskdesk-admin accounts --admin-email admin@example.com --admin-password secret
    taskdesk-admin set-role bob@example.com PowerUser

Admin commands authenticate with --admin-email/--admin-password, falling
back to TM_ADMIN_EMAIL/TM_ADMIN_PASSWORD.

Invariants:
    - Every mutation goes through the same policies as the HTTP API
    - Failures exit non-zero with the error code on stderr
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any

from ..config import AppConfig
from ..errors import NotFoundError, TaskDeskError
from ..main import setup_logging
from ..services import Services
from ..store.records import FAR_FUTURE_MS, Account

logger = logging.getLogger(__name__)


def _account_dict(account: Account) -> dict[str, Any]:
    return {
        "account_id": account.account_id,
        "email": account.email,
        "display_name": account.display_name,
        "roles": sorted(account.roles),
        "locked": account.is_locked(),
        "blocked": account.lockout_until == FAR_FUTURE_MS,
    }


class AdminCLI:
    """Administrative commands over a Services instance.

    Example:
        >>> cli = AdminCLI(services)
        >>> await cli.init()
        >>> await cli.set_role("admin@example.com", "secret", "bob@example.com", "PowerUser")
    """

    def __init__(self, services: Services) -> None:
        self.services = services

    async def init(self) -> dict[str, int]:
        await self.services.start()
        return await self.services.store.get_stats()

    async def stats(self) -> dict[str, int]:
        await self.services.store.initialize()
        return await self.services.store.get_stats()

    async def _login(self, admin_email: str, admin_password: str) -> str:
        await self.services.store.initialize()
        result = await self.services.auth.authenticate(admin_email, admin_password)
        return result.account_id

    async def _target_id(self, email: str) -> str:
        account = await self.services.identity.find_by_email(email)
        if account is None or account.is_deleted:
            raise NotFoundError("Account", email)
        return account.account_id

    async def accounts(self, admin_email: str, admin_password: str) -> list[Account]:
        actor_id = await self._login(admin_email, admin_password)
        return await self.services.roles.list_accounts(actor_id)

    async def set_role(
        self, admin_email: str, admin_password: str, email: str, role: str
    ) -> Account:
        actor_id = await self._login(admin_email, admin_password)
        return await self.services.roles.set_role(await self._target_id(email), role, actor_id)

    async def block(self, admin_email: str, admin_password: str, email: str) -> Account:
        actor_id = await self._login(admin_email, admin_password)
        return await self.services.roles.block(await self._target_id(email), actor_id)

    async def unblock(self, admin_email: str, admin_password: str, email: str) -> Account:
        actor_id = await self._login(admin_email, admin_password)
        return await self.services.roles.unblock(await self._target_id(email), actor_id)


def _print_accounts(accounts: list[Account], output_format: str) -> None:
    if output_format == "json":
        print(json.dumps([_account_dict(a) for a in accounts], indent=2))
        return
    if not accounts:
        print("No accounts")
        return
    for account in accounts:
        state = "BLOCKED" if account.lockout_until == FAR_FUTURE_MS else (
            "LOCKED" if account.is_locked() else "OK"
        )
        print(f"  [{state}] {account.email} ({', '.join(sorted(account.roles)) or '-'})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="TaskDesk administration tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init", help="Create the schema and seed the admin account")

    stats_parser = subparsers.add_parser("stats", help="Show row counts")
    stats_parser.add_argument(
        "--format", choices=["text", "json"], default="text", help="Output format"
    )

    def admin_parser(name: str, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--admin-email", default=os.getenv("TM_ADMIN_EMAIL"))
        sub.add_argument("--admin-password", default=os.getenv("TM_ADMIN_PASSWORD"))
        return sub

    accounts_parser = admin_parser("accounts", "List accounts")
    accounts_parser.add_argument(
        "--format", choices=["text", "json"], default="text", help="Output format"
    )

    role_parser = admin_parser("set-role", "Give an account exactly one role")
    role_parser.add_argument("email", help="Target account email")
    role_parser.add_argument("role", help="Admin, PowerUser or User")

    for name, help_text in (("block", "Block an account"), ("unblock", "Unblock an account")):
        admin_parser(name, help_text).add_argument("email", help="Target account email")

    return parser


async def run(args: argparse.Namespace, services: Services) -> int:
    cli = AdminCLI(services)

    if args.command == "init":
        stats = await cli.init()
        print(f"Database ready at {services.store.get_db_path()}")
        print(f"  accounts: {stats['accounts']}")
        return 0

    if args.command == "stats":
        stats = await cli.stats()
        if args.format == "json":
            print(json.dumps(stats, indent=2, sort_keys=True))
        else:
            for table, count in sorted(stats.items()):
                print(f"  {table}: {count}")
        return 0

    if not args.admin_email or not args.admin_password:
        print("Admin credentials required (--admin-email/--admin-password)", file=sys.stderr)
        return 2

    if args.command == "accounts":
        _print_accounts(await cli.accounts(args.admin_email, args.admin_password), args.format)
    elif args.command == "set-role":
        account = await cli.set_role(args.admin_email, args.admin_password, args.email, args.role)
        print(f"{account.email} now has role {args.role}")
    elif args.command == "block":
        account = await cli.block(args.admin_email, args.admin_password, args.email)
        print(f"{account.email} blocked")
    elif args.command == "unblock":
        account = await cli.unblock(args.admin_email, args.admin_password, args.email)
        print(f"{account.email} unblocked")
    return 0


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the admin tool."""
    args = build_parser().parse_args(argv)

    try:
        config = AppConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config)

    try:
        code = asyncio.run(run(args, Services.build(config)))
    except TaskDeskError as e:
        print(f"{e.code}: {e.message}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
