"""
Workspace operations for TaskDesk.

Everything an account does with its own categories, tasks and agenda.
Reads go through OwnedRepository, deletes go through CascadePolicy, and
every write first checks that the parent row is visible to the actor.

Invariants:
    - A task is created under a category owned by the same account
    - An agenda entry is created for a task owned by the same account
    - Names and titles are trimmed and must not be blank
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from .access.cascade import CascadePolicy, CascadeResult
from .access.ownership import OwnedRepository
from .access.roles import RolePolicy
from .errors import InvalidOperationError, NotFoundError
from .store.domain_store import DomainStore
from .store.records import (
    AgendaEntry,
    AgendaItem,
    Category,
    Role,
    TaskItem,
    TaskStatusFilter,
    to_day,
)

logger = logging.getLogger(__name__)

KPI_WINDOW_DAYS = 7


def _required(value: str | None, field_name: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise InvalidOperationError(f"{field_name} must not be empty", field_name)
    return cleaned


def _optional(value: str | None) -> str | None:
    cleaned = (value or "").strip()
    return cleaned or None


@dataclass(frozen=True)
class Kpis:
    total_tasks: int
    open_tasks: int
    completed_tasks: int
    agenda_today: int
    agenda_next_7_days: int

    @property
    def has_data(self) -> bool:
        return self.total_tasks > 0 or self.agenda_today > 0 or self.agenda_next_7_days > 0


class Workspace:
    """Category, task and agenda operations for the acting account.

    Example:
        >>> ws = Workspace(store, cascade, roles)
        >>> work = await ws.add_category(account_id, "Work")
        >>> task = await ws.add_task(account_id, work.category_id, "Buy milk")
        >>> await ws.plan_task(account_id, task.task_id, date(2024, 6, 1))
    """

    def __init__(self, store: DomainStore, cascade: CascadePolicy, roles: RolePolicy) -> None:
        self.store = store
        self.cascade = cascade
        self.roles = roles

    async def repository(self, actor_id: str) -> OwnedRepository:
        return await OwnedRepository.for_actor(self.store, actor_id)

    async def _owned_repository(
        self, actor_id: str, resource_type: str, resource_id: int | str
    ) -> OwnedRepository:
        repo = await self.repository(actor_id)
        if repo.filter.denies_all:
            raise NotFoundError(resource_type, resource_id)
        return repo

    # ---- categories ----

    async def list_categories(self, actor_id: str) -> list[Category]:
        return await (await self.repository(actor_id)).list_categories()

    async def add_category(self, actor_id: str, name: str) -> Category:
        name = _required(name, "name")
        await self._owned_repository(actor_id, "Account", actor_id)

        category_id = await self.store.insert("categories", {"name": name, "owner_id": actor_id})
        logger.debug("Added category", extra={"category_id": category_id})
        return Category(category_id=category_id, name=name, owner_id=actor_id)

    async def rename_category(self, actor_id: str, category_id: int, name: str) -> Category:
        name = _required(name, "name")
        repo = await self._owned_repository(actor_id, "Category", category_id)
        category = await repo.get_category(category_id)
        if category is None:
            raise NotFoundError("Category", category_id)

        where, params = repo.filter.clause("id = ?", (category_id,))
        await self.store.update("categories", {"name": name}, where, params)
        category.name = name
        return category

    async def delete_category(self, actor_id: str, category_id: int) -> CascadeResult:
        return await self.cascade.soft_delete_category(category_id, actor_id)

    # ---- tasks ----

    async def list_tasks(
        self,
        actor_id: str,
        category_id: int | None = None,
        status: TaskStatusFilter = TaskStatusFilter.ALL,
    ) -> list[TaskItem]:
        return await (await self.repository(actor_id)).list_tasks(category_id, status)

    async def get_task(self, actor_id: str, task_id: int) -> TaskItem:
        task = await (await self.repository(actor_id)).get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    async def add_task(
        self,
        actor_id: str,
        category_id: int,
        title: str,
        description: str | None = None,
    ) -> TaskItem:
        """Create a task under one of the actor's categories.

        Raises:
            InvalidOperationError: If the title is blank
            NotFoundError: If the category is not visible to the actor
        """
        title = _required(title, "title")
        description = _optional(description)

        repo = await self._owned_repository(actor_id, "Category", category_id)
        if await repo.get_category(category_id) is None:
            raise NotFoundError("Category", category_id)

        task_id = await self.store.insert(
            "tasks",
            {
                "title": title,
                "description": description,
                "is_completed": 0,
                "category_id": category_id,
                "owner_id": actor_id,
            },
        )
        logger.debug("Added task", extra={"task_id": task_id, "category_id": category_id})
        return TaskItem(
            task_id=task_id,
            title=title,
            description=description,
            is_completed=False,
            owner_id=actor_id,
            category_id=category_id,
        )

    async def edit_task(
        self,
        actor_id: str,
        task_id: int,
        title: str,
        description: str | None = None,
    ) -> TaskItem:
        title = _required(title, "title")
        description = _optional(description)
        return await self._update_task(
            actor_id, task_id, {"title": title, "description": description}
        )

    async def set_task_completed(self, actor_id: str, task_id: int, completed: bool) -> TaskItem:
        return await self._update_task(actor_id, task_id, {"is_completed": int(completed)})

    async def _update_task(self, actor_id: str, task_id: int, values: dict) -> TaskItem:
        repo = await self._owned_repository(actor_id, "Task", task_id)
        where, params = repo.filter.clause("id = ?", (task_id,))
        if not await self.store.update("tasks", values, where, params):
            raise NotFoundError("Task", task_id)

        task = await repo.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    async def delete_task(self, actor_id: str, task_id: int) -> CascadeResult:
        return await self.cascade.soft_delete_task(task_id, actor_id)

    # ---- agenda ----

    async def list_agenda(self, actor_id: str, day: date) -> list[AgendaEntry]:
        return await (await self.repository(actor_id)).list_agenda(to_day(day))

    async def plan_task(self, actor_id: str, task_id: int, day: date) -> AgendaItem:
        """Put one of the actor's tasks on the agenda for a day.

        Raises:
            NotFoundError: If the task is not visible to the actor
        """
        planned = to_day(day)
        repo = await self._owned_repository(actor_id, "Task", task_id)
        if await repo.get_task(task_id) is None:
            raise NotFoundError("Task", task_id)

        agenda_id = await self.store.insert(
            "agenda_items",
            {"task_id": task_id, "planned_date": planned.isoformat(), "owner_id": actor_id},
        )
        logger.debug("Planned task", extra={"task_id": task_id, "planned_date": planned.isoformat()})
        return AgendaItem(agenda_id=agenda_id, task_id=task_id, planned_date=planned, owner_id=actor_id)

    async def reschedule(self, actor_id: str, agenda_id: int, day: date) -> AgendaItem:
        planned = to_day(day)
        repo = await self._owned_repository(actor_id, "AgendaItem", agenda_id)
        where, params = repo.filter.clause("id = ?", (agenda_id,))
        if not await self.store.update(
            "agenda_items", {"planned_date": planned.isoformat()}, where, params
        ):
            raise NotFoundError("AgendaItem", agenda_id)

        item = await repo.get_agenda_item(agenda_id)
        if item is None:
            raise NotFoundError("AgendaItem", agenda_id)
        return item

    async def remove_agenda_item(self, actor_id: str, agenda_id: int) -> CascadeResult:
        return await self.cascade.soft_delete_agenda_item(agenda_id, actor_id)

    # ---- dashboard ----

    async def kpis(self, actor_id: str, today: date | None = None) -> Kpis:
        """Task and agenda counters for Admins and PowerUsers.

        Raises:
            UnauthorizedError: If the actor is neither Admin nor PowerUser
        """
        await self.roles.require_role(actor_id, Role.ADMIN, Role.POWER_USER)

        today = to_day(today or date.today())
        repo = await self.repository(actor_id)
        total = await repo.count_tasks()
        completed = await repo.count_tasks(completed=True)
        return Kpis(
            total_tasks=total,
            open_tasks=total - completed,
            completed_tasks=completed,
            agenda_today=await repo.count_agenda(today),
            agenda_next_7_days=await repo.count_agenda(today, today + timedelta(days=KPI_WINDOW_DAYS)),
        )
