"""
Identity store for TaskDesk.

Accounts, credentials, lockout state and role membership, on top of
DomainStore. Policy (who may change what) lives in taskdesk.access.roles
and taskdesk.identity.auth; this module only persists.

Invariants:
    - Emails are unique after normalization (trim + lower case)
    - replace_roles() swaps membership in one transaction
    - mark_deleted() sets is_deleted and a far-future lockout in one statement
"""

from __future__ import annotations

import logging
import uuid

from ..errors import InvalidOperationError
from ..store.domain_store import DomainStore, placeholders
from ..store.records import FAR_FUTURE_MS, Account, Role, now_ms
from .passwords import PasswordHasher

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class IdentityStore:
    """Persists accounts and role membership.

    Example:
        >>> identity = IdentityStore(store, PasswordHasher())
        >>> account = await identity.create_account("ann@example.com", "secret1", role=Role.USER)
        >>> await identity.is_in_role(account.account_id, Role.USER)
        True
    """

    def __init__(self, store: DomainStore, hasher: PasswordHasher | None = None) -> None:
        self.store = store
        self.hasher = hasher or PasswordHasher()

    async def create_account(
        self,
        email: str,
        password: str,
        display_name: str | None = None,
        role: Role | None = None,
    ) -> Account:
        """Create an account, optionally with its initial role.

        Raises:
            InvalidOperationError: If the email is already registered
        """
        email = email.strip()
        normalized = normalize_email(email)
        account_id = str(uuid.uuid4())
        password_hash = self.hasher.hash(password)
        created_at = now_ms()

        with self.store.transaction() as conn:
            existing = conn.execute(
                "SELECT 1 FROM accounts WHERE normalized_email = ?", (normalized,)
            ).fetchone()
            if existing:
                raise InvalidOperationError(f"Email '{email}' is already registered", "email")

            self.store.insert_in(
                conn,
                "accounts",
                {
                    "account_id": account_id,
                    "email": email,
                    "normalized_email": normalized,
                    "display_name": display_name or email,
                    "password_hash": password_hash,
                    "created_at": created_at,
                },
            )
            if role is not None:
                self.store.insert_in(
                    conn, "account_roles", {"account_id": account_id, "role": role.value}
                )

        logger.info("Created account", extra={"account_id": account_id})

        return Account(
            account_id=account_id,
            email=email,
            display_name=display_name or email,
            password_hash=password_hash,
            is_deleted=False,
            lockout_until=None,
            failed_attempts=0,
            created_at=created_at,
            roles={role.value} if role else set(),
        )

    async def find_by_email(self, email: str) -> Account | None:
        """Look up an account by email, case-insensitively. Includes deleted accounts."""
        row = await self.store.select_one(
            "accounts", "normalized_email = ?", (normalize_email(email),)
        )
        if row is None:
            return None
        return Account.from_row(row, await self.get_roles(row["account_id"]))

    async def find_by_id(self, account_id: str) -> Account | None:
        row = await self.store.select_one("accounts", "account_id = ?", (account_id,))
        if row is None:
            return None
        return Account.from_row(row, await self.get_roles(account_id))

    async def find_active(self, account_id: str | None) -> Account | None:
        """Like find_by_id, but soft-deleted accounts count as absent."""
        if not account_id:
            return None
        account = await self.find_by_id(account_id)
        if account is None or account.is_deleted:
            return None
        return account

    async def list_accounts(self, include_deleted: bool = False) -> list[Account]:
        where = "1 = 1" if include_deleted else "is_deleted = 0"
        rows = await self.store.select("accounts", where, order_by="normalized_email")
        if not rows:
            return []

        ids = [row["account_id"] for row in rows]
        role_rows = await self.store.select(
            "account_roles", f"account_id IN ({placeholders(len(ids))})", ids
        )
        roles: dict[str, set[str]] = {}
        for role_row in role_rows:
            roles.setdefault(role_row["account_id"], set()).add(role_row["role"])

        return [Account.from_row(row, roles.get(row["account_id"], set())) for row in rows]

    async def get_roles(self, account_id: str) -> set[str]:
        rows = await self.store.select("account_roles", "account_id = ?", (account_id,))
        return {row["role"] for row in rows}

    async def check_password(self, account: Account, password: str) -> bool:
        return self.hasher.verify(password, account.password_hash)

    async def is_locked_out(self, account: Account, at_ms: int | None = None) -> bool:
        return account.is_locked(at_ms)

    async def set_lockout_until(self, account_id: str, until_ms: int | None) -> bool:
        """Set or clear (None) the lockout end. Clearing also resets failed attempts."""
        values: dict[str, int | None] = {"lockout_until": until_ms}
        if until_ms is None:
            values["failed_attempts"] = 0
        changed = await self.store.update("accounts", values, "account_id = ?", (account_id,))
        return changed > 0

    async def add_to_role(self, account_id: str, role: Role) -> None:
        with self.store.transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO account_roles (account_id, role) VALUES (?, ?)",
                (account_id, role.value),
            )

    async def remove_from_role(self, account_id: str, role: Role) -> bool:
        """Remove a membership. Not being a member is not an error.

        Returns:
            True if a membership was removed
        """
        with self.store.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM account_roles WHERE account_id = ? AND role = ?",
                (account_id, role.value),
            )
            return cursor.rowcount > 0

    async def is_in_role(self, account_id: str, role: Role) -> bool:
        return role.value in await self.get_roles(account_id)

    async def replace_roles(self, account_id: str, role: Role) -> set[str]:
        """Make `role` the only membership of the account, atomically.

        Returns:
            The roles that were removed
        """
        with self.store.transaction() as conn:
            removed = {
                row["role"]
                for row in conn.execute(
                    "SELECT role FROM account_roles WHERE account_id = ? AND role != ?",
                    (account_id, role.value),
                ).fetchall()
            }
            conn.execute(
                "DELETE FROM account_roles WHERE account_id = ? AND role != ?",
                (account_id, role.value),
            )
            conn.execute(
                "INSERT OR IGNORE INTO account_roles (account_id, role) VALUES (?, ?)",
                (account_id, role.value),
            )
        return removed

    async def update(self, account: Account) -> bool:
        """Persist the mutable fields of an account."""
        changed = await self.store.update(
            "accounts",
            {
                "display_name": account.display_name,
                "is_deleted": int(account.is_deleted),
                "lockout_until": account.lockout_until,
                "failed_attempts": account.failed_attempts,
            },
            "account_id = ?",
            (account.account_id,),
        )
        return changed > 0

    async def record_failed_attempt(
        self,
        account_id: str,
        max_attempts: int,
        lockout_ms: int,
        at_ms: int | None = None,
    ) -> int | None:
        """Count a bad password and lock the account when the limit is hit.

        Args:
            account_id: Account that failed the password check
            max_attempts: Limit before lockout (0 disables lockout)
            lockout_ms: Lockout length
            at_ms: Current time (defaults to now)

        Returns:
            The new lockout end if the account was locked, else None
        """
        at_ms = at_ms if at_ms is not None else now_ms()
        with self.store.transaction() as conn:
            row = conn.execute(
                "SELECT failed_attempts FROM accounts WHERE account_id = ?", (account_id,)
            ).fetchone()
            if row is None:
                return None

            attempts = row["failed_attempts"] + 1
            if max_attempts and attempts >= max_attempts:
                until = at_ms + lockout_ms
                self.store.update_in(
                    conn,
                    "accounts",
                    {"failed_attempts": 0, "lockout_until": until},
                    "account_id = ?",
                    (account_id,),
                )
                logger.warning("Account locked after failed logins", extra={"account_id": account_id})
                return until

            self.store.update_in(
                conn, "accounts", {"failed_attempts": attempts}, "account_id = ?", (account_id,)
            )
            return None

    async def reset_failed_attempts(self, account_id: str) -> None:
        await self.store.update(
            "accounts",
            {"failed_attempts": 0},
            "account_id = ? AND failed_attempts != 0",
            (account_id,),
        )

    async def mark_deleted(self, account_id: str) -> bool:
        """Soft-delete an account and block it indefinitely in one statement."""
        changed = await self.store.update(
            "accounts",
            {"is_deleted": 1, "lockout_until": FAR_FUTURE_MS},
            "account_id = ?",
            (account_id,),
        )
        return changed > 0
