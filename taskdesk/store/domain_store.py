"""
SQLite store for TaskDesk.

This module manages the single SQLite database that stores:
- Accounts, roles and role membership
- Categories, tasks and agenda items with owner and soft-delete flags

The store knows nothing about ownership. Owner scoping lives in
taskdesk.access.ownership and is applied on top of the generic
select/count/update helpers here.

Invariants:
    - Multi-row writes run inside transaction() (BEGIN IMMEDIATE ... COMMIT)
    - Account and domain rows are never DELETEd, only flagged is_deleted = 1
    - Every sqlite3.Error leaves this module as StorageFailureError

How to change safely:
    - Schema migrations must be backward compatible
    - Table names are interpolated into SQL, keep them in KNOWN_TABLES

Table schema:
    accounts:
        - account_id TEXT (UUID) PRIMARY KEY
        - email TEXT, normalized_email TEXT UNIQUE
        - display_name TEXT, password_hash TEXT
        - is_deleted INTEGER, lockout_until INTEGER (Unix ms), failed_attempts INTEGER

    account_roles:
        - account_id TEXT -> accounts
        - role TEXT -> roles
        - PRIMARY KEY (account_id, role)

    categories / tasks / agenda_items:
        - id INTEGER PRIMARY KEY AUTOINCREMENT
        - owner_id TEXT -> accounts
        - is_deleted INTEGER
        - tasks.category_id -> categories, agenda_items.task_id -> tasks
        - agenda_items.planned_date TEXT (YYYY-MM-DD)
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from ..config import StorageConfig
from ..errors import StorageFailureError
from .records import Role, now_ms

logger = logging.getLogger(__name__)

KNOWN_TABLES = frozenset({"accounts", "account_roles", "categories", "tasks", "agenda_items"})
SOFT_DELETE_TABLES = ("accounts", "categories", "tasks", "agenda_items")


def placeholders(count: int) -> str:
    return ",".join("?" for _ in range(count))


def _check_table(table: str) -> str:
    if table not in KNOWN_TABLES:
        raise ValueError(f"Unknown table: {table}")
    return table


class DomainStore:
    """SQLite store for accounts and owned domain rows.

    Thread safety:
        Each operation opens its own connection.
        SQLite handles concurrent access via WAL mode.

    Example:
        >>> store = DomainStore("/tmp/taskdesk.db")
        >>> await store.initialize()
        >>> category_id = await store.insert(
        ...     "categories", {"name": "Work", "owner_id": account_id}
        ... )
    """

    SCHEMA_VERSION = 1

    def __init__(
        self,
        db_path: str,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        """Initialize the store.

        Args:
            db_path: SQLite database file
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
        """
        self.db_path = Path(db_path)
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: StorageConfig) -> DomainStore:
        return cls(
            config.db_path,
            wal_mode=config.wal_mode,
            busy_timeout_ms=config.busy_timeout_ms,
        )

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Open a configured connection.

        Yields:
            SQLite connection in autocommit mode

        Raises:
            StorageFailureError: On any SQLite error inside the block
        """
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                str(self.db_path),
                timeout=self.busy_timeout_ms / 1000.0,
                isolation_level=None,  # Autocommit by default, explicit transactions
            )
        except (OSError, sqlite3.Error) as e:
            raise StorageFailureError(f"Cannot open database: {e}", operation="connect") from e

        conn.row_factory = sqlite3.Row
        try:
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            if self.wal_mode:
                conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            conn.execute("PRAGMA foreign_keys = ON")

            yield conn
        except sqlite3.Error as e:
            logger.error(f"SQLite error: {e}")
            raise StorageFailureError(str(e)) from e
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block as one atomic write.

        Commits when the block finishes and rolls back on any exception,
        including TaskDeskError raised by the caller.
        """
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                # SQLite may already have rolled back on some errors
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        """Create database schema."""
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS accounts (
                account_id TEXT PRIMARY KEY,
                email TEXT NOT NULL,
                normalized_email TEXT NOT NULL UNIQUE,
                display_name TEXT NOT NULL,
                password_hash TEXT NOT NULL,
                is_deleted INTEGER NOT NULL DEFAULT 0,
                lockout_until INTEGER,
                failed_attempts INTEGER NOT NULL DEFAULT 0,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS roles (
                name TEXT PRIMARY KEY
            );

            CREATE TABLE IF NOT EXISTS account_roles (
                account_id TEXT NOT NULL REFERENCES accounts(account_id),
                role TEXT NOT NULL REFERENCES roles(name),
                PRIMARY KEY (account_id, role)
            );

            CREATE TABLE IF NOT EXISTS categories (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                owner_id TEXT NOT NULL REFERENCES accounts(account_id),
                is_deleted INTEGER NOT NULL DEFAULT 0,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_categories_owner
                ON categories(owner_id, is_deleted);

            CREATE TABLE IF NOT EXISTS tasks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                description TEXT,
                is_completed INTEGER NOT NULL DEFAULT 0,
                owner_id TEXT NOT NULL REFERENCES accounts(account_id),
                category_id INTEGER NOT NULL REFERENCES categories(id),
                is_deleted INTEGER NOT NULL DEFAULT 0,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_tasks_owner_category
                ON tasks(owner_id, category_id, is_deleted);

            CREATE TABLE IF NOT EXISTS agenda_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                task_id INTEGER NOT NULL REFERENCES tasks(id),
                planned_date TEXT NOT NULL,
                owner_id TEXT NOT NULL REFERENCES accounts(account_id),
                is_deleted INTEGER NOT NULL DEFAULT 0,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_agenda_owner_date
                ON agenda_items(owner_id, planned_date, is_deleted);
            CREATE INDEX IF NOT EXISTS idx_agenda_task ON agenda_items(task_id);

            INSERT OR IGNORE INTO schema_version (version, applied_at)
            VALUES (1, strftime('%s', 'now') * 1000);
        """)
        conn.executemany(
            "INSERT OR IGNORE INTO roles (name) VALUES (?)",
            [(role.value,) for role in Role],
        )

    async def initialize(self) -> None:
        """Create the database file, schema and the fixed roles if missing."""
        async with self._lock:
            with self._get_connection() as conn:
                self._create_schema(conn)
        logger.info(f"Initialized database: {self.db_path}")

    async def select(
        self,
        table: str,
        where: str = "1 = 1",
        params: Sequence[Any] = (),
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[sqlite3.Row]:
        """Select rows from a table.

        Args:
            table: One of KNOWN_TABLES
            where: SQL predicate with ? placeholders
            params: Values for the placeholders
            order_by: Optional ORDER BY expression
            limit: Optional row limit

        Returns:
            Matching rows
        """
        query = f"SELECT * FROM {_check_table(table)} WHERE {where}"
        args = list(params)
        if order_by:
            query += f" ORDER BY {order_by}"
        if limit is not None:
            query += " LIMIT ?"
            args.append(limit)

        with self._get_connection() as conn:
            return conn.execute(query, args).fetchall()

    async def select_one(
        self,
        table: str,
        where: str,
        params: Sequence[Any] = (),
    ) -> sqlite3.Row | None:
        rows = await self.select(table, where, params, limit=1)
        return rows[0] if rows else None

    async def query(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        """Run a read-only statement (joins the helpers above cannot express)."""
        with self._get_connection() as conn:
            return conn.execute(sql, list(params)).fetchall()

    async def count(self, table: str, where: str = "1 = 1", params: Sequence[Any] = ()) -> int:
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"SELECT COUNT(*) FROM {_check_table(table)} WHERE {where}", list(params)
            )
            return cursor.fetchone()[0]

    async def insert(self, table: str, values: dict[str, Any]) -> int:
        """Insert one row.

        created_at/updated_at are filled in for domain tables when absent.

        Returns:
            The new rowid
        """
        with self.transaction() as conn:
            return self.insert_in(conn, table, values)

    def insert_in(self, conn: sqlite3.Connection, table: str, values: dict[str, Any]) -> int:
        """Insert one row inside an open transaction."""
        row = dict(values)
        if table != "account_roles":
            ts = now_ms()
            row.setdefault("created_at", ts)
            row.setdefault("updated_at", ts)

        columns = ", ".join(row)
        cursor = conn.execute(
            f"INSERT INTO {_check_table(table)} ({columns}) VALUES ({placeholders(len(row))})",
            list(row.values()),
        )
        logger.debug("Inserted row", extra={"table": table, "rowid": cursor.lastrowid})
        return int(cursor.lastrowid or 0)

    async def update(
        self,
        table: str,
        values: dict[str, Any],
        where: str,
        params: Sequence[Any] = (),
    ) -> int:
        """Update rows matching a predicate.

        Returns:
            Number of rows changed
        """
        with self.transaction() as conn:
            return self.update_in(conn, table, values, where, params)

    def update_in(
        self,
        conn: sqlite3.Connection,
        table: str,
        values: dict[str, Any],
        where: str,
        params: Sequence[Any] = (),
    ) -> int:
        """Update rows inside an open transaction."""
        row = dict(values)
        row.setdefault("updated_at", now_ms())
        assignments = ", ".join(f"{column} = ?" for column in row)
        cursor = conn.execute(
            f"UPDATE {_check_table(table)} SET {assignments} WHERE {where}",
            [*row.values(), *params],
        )
        return cursor.rowcount

    async def get_stats(self) -> dict[str, int]:
        """Get row counts per table, live and soft-deleted.

        Returns:
            Dictionary like {"tasks": 3, "tasks_deleted": 1, ...}
        """
        stats: dict[str, int] = {}
        with self._get_connection() as conn:
            for table in SOFT_DELETE_TABLES:
                cursor = conn.execute(
                    f"SELECT COUNT(*), COALESCE(SUM(is_deleted), 0) FROM {table}"
                )
                total, deleted = cursor.fetchone()
                stats[table] = total - deleted
                stats[f"{table}_deleted"] = deleted
        return stats

    def get_db_path(self) -> Path:
        return self.db_path
