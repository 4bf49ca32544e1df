"""
Ownership and ambient filtering for TaskDesk.

Every read of a category, task or agenda item is scoped to the acting
account and hides soft-deleted rows. The predicate is expressed once, as
OwnerFilter, and applied by OwnedRepository and by the cascade policy.

Invariants:
    - The default filter is owner_id = actor AND is_deleted = 0
    - An absent or soft-deleted actor gets a deny-all filter (empty results, no error)
    - Including deleted rows needs the explicit including_deleted() constructor,
      which only start-up seeding uses

How to change safely:
    - New queries must build their WHERE clause from OwnerFilter.clause()
    - Never add a repository method that takes an owner id as a plain parameter
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

from ..store.domain_store import DomainStore, placeholders
from ..store.records import (
    AgendaEntry,
    AgendaItem,
    Category,
    TaskItem,
    TaskStatusFilter,
    to_day,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OwnerFilter:
    """Owner and soft-delete predicate for domain tables.

    Attributes:
        owner_id: Account whose rows are visible (None = nothing is visible)
        include_deleted: Whether soft-deleted rows are visible too
    """

    owner_id: str | None
    include_deleted: bool = False

    @classmethod
    def deny_all(cls) -> OwnerFilter:
        return cls(owner_id=None)

    @property
    def denies_all(self) -> bool:
        return self.owner_id is None

    def clause(
        self,
        extra: str | None = None,
        params: Sequence[Any] = (),
        alias: str | None = None,
    ) -> tuple[str, list[Any]]:
        """Build a WHERE clause, optionally AND-ed with an extra predicate.

        Args:
            extra: Additional predicate with ? placeholders
            params: Values for the extra predicate
            alias: Table alias to prefix the owner columns with

        Returns:
            Tuple of (sql, params)
        """
        if self.owner_id is None:
            return "0 = 1", []

        prefix = f"{alias}." if alias else ""
        sql = f"{prefix}owner_id = ?"
        args: list[Any] = [self.owner_id]
        if not self.include_deleted:
            sql += f" AND {prefix}is_deleted = 0"
        if extra:
            sql += f" AND ({extra})"
            args.extend(params)
        return sql, args


class OwnedRepository:
    """Read access to one account's categories, tasks and agenda.

    Example:
        >>> repo = await OwnedRepository.for_actor(store, account_id)
        >>> [c.name for c in await repo.list_categories()]
        ['General', 'Work']
    """

    def __init__(self, store: DomainStore, owner_filter: OwnerFilter) -> None:
        self.store = store
        self.filter = owner_filter

    @classmethod
    async def for_actor(cls, store: DomainStore, actor_id: str | None) -> OwnedRepository:
        """Scope a repository to an actor, denying everything if the actor is gone."""
        return cls(store, await resolve_filter(store, actor_id))

    @classmethod
    def including_deleted(cls, store: DomainStore, owner_id: str) -> OwnedRepository:
        """Unfiltered view of one owner's rows, soft-deleted ones included.

        Only for seeding and migration checks; never for user-facing reads.
        """
        return cls(store, OwnerFilter(owner_id=owner_id, include_deleted=True))

    @property
    def actor_id(self) -> str | None:
        return self.filter.owner_id

    # ---- categories ----

    async def list_categories(self) -> list[Category]:
        where, params = self.filter.clause()
        rows = await self.store.select(
            "categories", where, params, order_by="name COLLATE NOCASE, id"
        )
        return [Category.from_row(row) for row in rows]

    async def get_category(self, category_id: int) -> Category | None:
        where, params = self.filter.clause("id = ?", (category_id,))
        row = await self.store.select_one("categories", where, params)
        return Category.from_row(row) if row else None

    async def first_category(self) -> Category | None:
        where, params = self.filter.clause()
        rows = await self.store.select("categories", where, params, order_by="id", limit=1)
        return Category.from_row(rows[0]) if rows else None

    async def count_categories(self) -> int:
        where, params = self.filter.clause()
        return await self.store.count("categories", where, params)

    # ---- tasks ----

    async def list_tasks(
        self,
        category_id: int | None = None,
        status: TaskStatusFilter = TaskStatusFilter.ALL,
    ) -> list[TaskItem]:
        """List tasks, open ones first, then by title.

        Args:
            category_id: Only tasks of this category (None = all categories)
            status: Completion filter
        """
        conditions: list[str] = []
        args: list[Any] = []
        if category_id is not None:
            conditions.append("category_id = ?")
            args.append(category_id)
        if status is TaskStatusFilter.OPEN:
            conditions.append("is_completed = 0")
        elif status is TaskStatusFilter.COMPLETED:
            conditions.append("is_completed = 1")

        where, params = self.filter.clause(" AND ".join(conditions) or None, args)
        rows = await self.store.select(
            "tasks", where, params, order_by="is_completed, title COLLATE NOCASE, id"
        )
        return [TaskItem.from_row(row) for row in rows]

    async def get_task(self, task_id: int) -> TaskItem | None:
        where, params = self.filter.clause("id = ?", (task_id,))
        row = await self.store.select_one("tasks", where, params)
        return TaskItem.from_row(row) if row else None

    async def first_task(self) -> TaskItem | None:
        where, params = self.filter.clause()
        rows = await self.store.select("tasks", where, params, order_by="id", limit=1)
        return TaskItem.from_row(rows[0]) if rows else None

    async def count_tasks(self, completed: bool | None = None) -> int:
        extra = None if completed is None else "is_completed = ?"
        where, params = self.filter.clause(extra, () if completed is None else (int(completed),))
        return await self.store.count("tasks", where, params)

    # ---- agenda ----

    async def list_agenda(self, day: date) -> list[AgendaEntry]:
        """Agenda entries planned on one day, with their task titles."""
        where, params = self.filter.clause("a.planned_date = ?", (to_day(day).isoformat(),), "a")
        rows = await self.store.query(
            f"""
            SELECT a.id, a.task_id, a.planned_date,
                   t.title AS task_title, t.description AS task_description
            FROM agenda_items a
            LEFT JOIN tasks t
                ON t.id = a.task_id AND t.owner_id = a.owner_id AND t.is_deleted = 0
            WHERE {where}
            ORDER BY a.id
            """,
            params,
        )
        return [AgendaEntry.from_row(row) for row in rows]

    async def get_agenda_item(self, agenda_id: int) -> AgendaItem | None:
        where, params = self.filter.clause("id = ?", (agenda_id,))
        row = await self.store.select_one("agenda_items", where, params)
        return AgendaItem.from_row(row) if row else None

    async def agenda_for_tasks(self, task_ids: Sequence[int]) -> list[AgendaItem]:
        if not task_ids:
            return []
        where, params = self.filter.clause(
            f"task_id IN ({placeholders(len(task_ids))})", list(task_ids)
        )
        rows = await self.store.select("agenda_items", where, params, order_by="id")
        return [AgendaItem.from_row(row) for row in rows]

    async def count_agenda(self, start: date, end: date | None = None) -> int:
        """Count agenda entries planned in [start, end] (inclusive)."""
        end = end or start
        where, params = self.filter.clause(
            "planned_date BETWEEN ? AND ?",
            (to_day(start).isoformat(), to_day(end).isoformat()),
        )
        return await self.store.count("agenda_items", where, params)


async def resolve_filter(store: DomainStore, actor_id: str | None) -> OwnerFilter:
    """Build the default filter for an actor.

    Returns a deny-all filter when the actor id is empty, unknown or
    soft-deleted.
    """
    if not actor_id:
        return OwnerFilter.deny_all()

    active = await store.count("accounts", "account_id = ? AND is_deleted = 0", (actor_id,))
    if not active:
        logger.debug("Denying access for inactive actor", extra={"actor_id": actor_id})
        return OwnerFilter.deny_all()
    return OwnerFilter(owner_id=actor_id)
