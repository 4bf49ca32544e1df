"""
Soft-delete cascade and default categories.

Deleting a category deletes its tasks, deleting a task deletes its agenda
entries. Nothing is physically removed: rows are flagged is_deleted = 1
and disappear behind the ambient filter.

Invariants:
    - Ownership check and every mutation of one cascade share one transaction
    - A cascade only touches rows visible to the actor (same owner, not yet deleted)
    - A row not visible to the actor is NotFound, never Unauthorized
    - ensure_default_categories() never creates a second set
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..errors import NotFoundError
from ..store.domain_store import DomainStore, placeholders
from ..store.records import Category
from .ownership import OwnerFilter, resolve_filter

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_NAMES = ("General", "Work")


@dataclass
class CascadeResult:
    """Ids flagged deleted by one cascade."""

    category_ids: list[int] = field(default_factory=list)
    task_ids: list[int] = field(default_factory=list)
    agenda_ids: list[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.category_ids) + len(self.task_ids) + len(self.agenda_ids)


class CascadePolicy:
    """Soft-delete cascades over one account's rows.

    Example:
        >>> cascade = CascadePolicy(store)
        >>> result = await cascade.soft_delete_category(category_id, account_id)
        >>> result.task_ids
        [10, 11]
    """

    def __init__(self, store: DomainStore) -> None:
        self.store = store

    def _visible_ids(
        self,
        conn: sqlite3.Connection,
        table: str,
        owner_filter: OwnerFilter,
        extra: str,
        params: Sequence[Any],
    ) -> list[int]:
        where, args = owner_filter.clause(extra, params)
        cursor = conn.execute(f"SELECT id FROM {table} WHERE {where} ORDER BY id", args)
        return [row["id"] for row in cursor.fetchall()]

    def _mark_deleted(self, conn: sqlite3.Connection, table: str, ids: list[int]) -> None:
        if ids:
            self.store.update_in(
                conn, table, {"is_deleted": 1}, f"id IN ({placeholders(len(ids))})", ids
            )

    def _cascade_to_agenda(
        self,
        conn: sqlite3.Connection,
        owner_filter: OwnerFilter,
        task_ids: list[int],
    ) -> list[int]:
        if not task_ids:
            return []
        agenda_ids = self._visible_ids(
            conn,
            "agenda_items",
            owner_filter,
            f"task_id IN ({placeholders(len(task_ids))})",
            task_ids,
        )
        self._mark_deleted(conn, "agenda_items", agenda_ids)
        return agenda_ids

    async def soft_delete_category(self, category_id: int, actor_id: str) -> CascadeResult:
        """Delete a category with its tasks and their agenda entries.

        Raises:
            NotFoundError: If the category is not visible to the actor
        """
        owner_filter = await resolve_filter(self.store, actor_id)

        with self.store.transaction() as conn:
            if not self._visible_ids(conn, "categories", owner_filter, "id = ?", (category_id,)):
                raise NotFoundError("Category", category_id)
            self._mark_deleted(conn, "categories", [category_id])

            task_ids = self._visible_ids(
                conn, "tasks", owner_filter, "category_id = ?", (category_id,)
            )
            self._mark_deleted(conn, "tasks", task_ids)

            agenda_ids = self._cascade_to_agenda(conn, owner_filter, task_ids)

        result = CascadeResult([category_id], task_ids, agenda_ids)
        logger.info(
            "Soft-deleted category",
            extra={
                "category_id": category_id,
                "tasks": len(task_ids),
                "agenda_items": len(agenda_ids),
            },
        )
        return result

    async def soft_delete_task(self, task_id: int, actor_id: str) -> CascadeResult:
        """Delete a task and its agenda entries.

        Raises:
            NotFoundError: If the task is not visible to the actor
        """
        owner_filter = await resolve_filter(self.store, actor_id)

        with self.store.transaction() as conn:
            if not self._visible_ids(conn, "tasks", owner_filter, "id = ?", (task_id,)):
                raise NotFoundError("Task", task_id)
            self._mark_deleted(conn, "tasks", [task_id])
            agenda_ids = self._cascade_to_agenda(conn, owner_filter, [task_id])

        logger.info(
            "Soft-deleted task", extra={"task_id": task_id, "agenda_items": len(agenda_ids)}
        )
        return CascadeResult(task_ids=[task_id], agenda_ids=agenda_ids)

    async def soft_delete_agenda_item(self, agenda_id: int, actor_id: str) -> CascadeResult:
        """Delete a single agenda entry.

        Raises:
            NotFoundError: If the entry is not visible to the actor
        """
        owner_filter = await resolve_filter(self.store, actor_id)

        with self.store.transaction() as conn:
            if not self._visible_ids(conn, "agenda_items", owner_filter, "id = ?", (agenda_id,)):
                raise NotFoundError("AgendaItem", agenda_id)
            self._mark_deleted(conn, "agenda_items", [agenda_id])

        return CascadeResult(agenda_ids=[agenda_id])

    async def ensure_default_categories(self, actor_id: str) -> list[Category]:
        """Give an account its starter categories if it has none.

        Only non-deleted categories count, whoever created them.

        Returns:
            The categories created (empty if the account already had some)
        """
        owner_filter = await resolve_filter(self.store, actor_id)
        if owner_filter.denies_all:
            return []

        created: list[Category] = []
        with self.store.transaction() as conn:
            where, params = owner_filter.clause()
            (existing,) = conn.execute(
                f"SELECT COUNT(*) FROM categories WHERE {where}", params
            ).fetchone()
            if existing:
                return []

            for name in DEFAULT_CATEGORY_NAMES:
                category_id = self.store.insert_in(
                    conn, "categories", {"name": name, "owner_id": actor_id}
                )
                created.append(Category(category_id=category_id, name=name, owner_id=actor_id))

        logger.info("Created default categories", extra={"account_id": actor_id})
        return created
