"""
Row types for the TaskDesk store.

Timestamps are Unix milliseconds, planned dates are date-only.
"""

from __future__ import annotations

import sqlite3
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

# 9999-12-31T23:59:59.999Z, used as "blocked until further notice"
FAR_FUTURE_MS = 253_402_300_799_999


def now_ms() -> int:
    return int(time.time() * 1000)


def to_day(value: date | datetime | str) -> date:
    """Normalize a planned date, dropping any time of day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


class Role(Enum):
    """The three fixed roles. An account holds exactly one."""

    ADMIN = "Admin"
    POWER_USER = "PowerUser"
    USER = "User"

    @classmethod
    def parse(cls, raw: str | Role) -> Role:
        """Parse a role name, case-insensitively.

        Raises:
            ValueError: If the name is not one of the three roles
        """
        if isinstance(raw, Role):
            return raw
        for role in cls:
            if role.value.lower() == str(raw).strip().lower():
                return role
        raise ValueError(f"Invalid role: {raw}. Must be one of {[r.value for r in cls]}")


class TaskStatusFilter(Enum):
    """Task listing filter."""

    ALL = "all"
    OPEN = "open"
    COMPLETED = "completed"


@dataclass
class Account:
    """Represents a user account.

    Attributes:
        account_id: Unique account identifier (UUID)
        email: Login email as entered
        display_name: Name shown in the UI
        password_hash: Encoded PBKDF2 hash
        is_deleted: Soft-delete flag
        lockout_until: Unix ms until which login is refused (None = not locked)
        failed_attempts: Consecutive failed password checks
        created_at: Creation timestamp (Unix ms)
        roles: Role names held by the account
    """

    account_id: str
    email: str
    display_name: str
    password_hash: str
    is_deleted: bool
    lockout_until: int | None
    failed_attempts: int
    created_at: int
    roles: set[str] = field(default_factory=set)

    def is_locked(self, at_ms: int | None = None) -> bool:
        if self.lockout_until is None:
            return False
        return self.lockout_until > (at_ms if at_ms is not None else now_ms())

    @classmethod
    def from_row(cls, row: sqlite3.Row, roles: set[str] | None = None) -> Account:
        return cls(
            account_id=row["account_id"],
            email=row["email"],
            display_name=row["display_name"],
            password_hash=row["password_hash"],
            is_deleted=bool(row["is_deleted"]),
            lockout_until=row["lockout_until"],
            failed_attempts=row["failed_attempts"],
            created_at=row["created_at"],
            roles=roles or set(),
        )


@dataclass
class Category:
    category_id: int
    name: str
    owner_id: str
    is_deleted: bool = False

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Category:
        return cls(
            category_id=row["id"],
            name=row["name"],
            owner_id=row["owner_id"],
            is_deleted=bool(row["is_deleted"]),
        )


@dataclass
class TaskItem:
    task_id: int
    title: str
    description: str | None
    is_completed: bool
    owner_id: str
    category_id: int
    is_deleted: bool = False

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> TaskItem:
        return cls(
            task_id=row["id"],
            title=row["title"],
            description=row["description"],
            is_completed=bool(row["is_completed"]),
            owner_id=row["owner_id"],
            category_id=row["category_id"],
            is_deleted=bool(row["is_deleted"]),
        )


@dataclass
class AgendaItem:
    agenda_id: int
    task_id: int
    planned_date: date
    owner_id: str
    is_deleted: bool = False

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> AgendaItem:
        return cls(
            agenda_id=row["id"],
            task_id=row["task_id"],
            planned_date=date.fromisoformat(row["planned_date"]),
            owner_id=row["owner_id"],
            is_deleted=bool(row["is_deleted"]),
        )


@dataclass
class AgendaEntry:
    """An agenda item joined with the task it plans."""

    agenda_id: int
    task_id: int
    planned_date: date
    task_title: str
    task_description: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> AgendaEntry:
        return cls(
            agenda_id=row["id"],
            task_id=row["task_id"],
            planned_date=date.fromisoformat(row["planned_date"]),
            task_title=row["task_title"] if row["task_title"] is not None else "(unknown task)",
            task_description=row["task_description"] or "",
        )
