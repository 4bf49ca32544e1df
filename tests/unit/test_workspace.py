"""
Unit tests for workspace operations.

Tests cover:
- Category add / rename
- Task add / edit / complete
- Agenda plan / reschedule / list
- Ownership on every write
- KPIs and their role gate
"""

from datetime import date, datetime

import pytest

from taskdesk.errors import InvalidOperationError, NotFoundError, UnauthorizedError
from taskdesk.store import Role, TaskStatusFilter


class TestCategories:
    """Tests for category operations."""

    @pytest.mark.asyncio
    async def test_add_trims_name(self, workspace, alice):
        category = await workspace.add_category(alice.account_id, "  Errands ")
        assert category.name == "Errands"
        assert category.owner_id == alice.account_id

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, workspace, alice):
        with pytest.raises(InvalidOperationError):
            await workspace.add_category(alice.account_id, "   ")

    @pytest.mark.asyncio
    async def test_rename(self, workspace, alice):
        category = await workspace.add_category(alice.account_id, "Old")
        await workspace.rename_category(alice.account_id, category.category_id, "New")

        names = [c.name for c in await workspace.list_categories(alice.account_id)]
        assert "New" in names
        assert "Old" not in names

    @pytest.mark.asyncio
    async def test_rename_other_account(self, workspace, alice, bob):
        category = await workspace.add_category(alice.account_id, "Mine")
        with pytest.raises(NotFoundError):
            await workspace.rename_category(bob.account_id, category.category_id, "Stolen")

    @pytest.mark.asyncio
    async def test_unknown_actor(self, workspace):
        with pytest.raises(NotFoundError):
            await workspace.add_category("missing", "X")
        assert await workspace.list_categories("missing") == []


class TestTasks:
    """Tests for task operations."""

    @pytest.mark.asyncio
    async def test_add_and_list(self, workspace, alice):
        category = await workspace.add_category(alice.account_id, "Home")
        task = await workspace.add_task(alice.account_id, category.category_id, " Buy milk ", "  ")

        assert task.title == "Buy milk"
        assert task.description is None
        assert not task.is_completed
        listed = await workspace.list_tasks(alice.account_id, category.category_id)
        assert [t.task_id for t in listed] == [task.task_id]

    @pytest.mark.asyncio
    async def test_add_under_foreign_category(self, workspace, alice, bob):
        """A task can only be created under the actor's own category."""
        category = await workspace.add_category(alice.account_id, "Home")
        with pytest.raises(NotFoundError):
            await workspace.add_task(bob.account_id, category.category_id, "Sneaky")
        assert await workspace.list_tasks(alice.account_id, category.category_id) == []

    @pytest.mark.asyncio
    async def test_add_under_deleted_category(self, workspace, alice):
        category = await workspace.add_category(alice.account_id, "Gone")
        await workspace.delete_category(alice.account_id, category.category_id)
        with pytest.raises(NotFoundError):
            await workspace.add_task(alice.account_id, category.category_id, "Late")

    @pytest.mark.asyncio
    async def test_edit(self, workspace, alice):
        category = await workspace.add_category(alice.account_id, "Home")
        task = await workspace.add_task(alice.account_id, category.category_id, "Draft")

        edited = await workspace.edit_task(alice.account_id, task.task_id, "Final", "Details")

        assert edited.title == "Final"
        assert edited.description == "Details"

    @pytest.mark.asyncio
    async def test_edit_blank_title(self, workspace, alice):
        category = await workspace.add_category(alice.account_id, "Home")
        task = await workspace.add_task(alice.account_id, category.category_id, "Draft")
        with pytest.raises(InvalidOperationError):
            await workspace.edit_task(alice.account_id, task.task_id, "")

    @pytest.mark.asyncio
    async def test_complete_toggle(self, workspace, alice):
        category = await workspace.add_category(alice.account_id, "Home")
        task = await workspace.add_task(alice.account_id, category.category_id, "Dishes")

        done = await workspace.set_task_completed(alice.account_id, task.task_id, True)
        assert done.is_completed
        assert await workspace.list_tasks(alice.account_id, status=TaskStatusFilter.OPEN) == []

        reopened = await workspace.set_task_completed(alice.account_id, task.task_id, False)
        assert not reopened.is_completed

    @pytest.mark.asyncio
    async def test_complete_other_account(self, workspace, alice, bob):
        category = await workspace.add_category(alice.account_id, "Home")
        task = await workspace.add_task(alice.account_id, category.category_id, "Dishes")

        with pytest.raises(NotFoundError):
            await workspace.set_task_completed(bob.account_id, task.task_id, True)
        assert not (await workspace.get_task(alice.account_id, task.task_id)).is_completed


class TestAgenda:
    """Tests for agenda operations."""

    @pytest.mark.asyncio
    async def test_plan_and_list(self, workspace, alice):
        category = await workspace.add_category(alice.account_id, "Home")
        task = await workspace.add_task(alice.account_id, category.category_id, "Call mom", "Sunday")

        item = await workspace.plan_task(alice.account_id, task.task_id, datetime(2024, 6, 1, 18, 30))

        assert item.planned_date == date(2024, 6, 1)
        entries = await workspace.list_agenda(alice.account_id, date(2024, 6, 1))
        assert len(entries) == 1
        assert entries[0].task_title == "Call mom"
        assert entries[0].task_description == "Sunday"
        assert await workspace.list_agenda(alice.account_id, date(2024, 6, 2)) == []

    @pytest.mark.asyncio
    async def test_plan_foreign_task(self, workspace, alice, bob):
        category = await workspace.add_category(alice.account_id, "Home")
        task = await workspace.add_task(alice.account_id, category.category_id, "Call mom")
        with pytest.raises(NotFoundError):
            await workspace.plan_task(bob.account_id, task.task_id, date(2024, 6, 1))

    @pytest.mark.asyncio
    async def test_reschedule(self, workspace, alice):
        category = await workspace.add_category(alice.account_id, "Home")
        task = await workspace.add_task(alice.account_id, category.category_id, "Call mom")
        item = await workspace.plan_task(alice.account_id, task.task_id, date(2024, 6, 1))

        moved = await workspace.reschedule(alice.account_id, item.agenda_id, "2024-06-03")

        assert moved.planned_date == date(2024, 6, 3)
        assert await workspace.list_agenda(alice.account_id, date(2024, 6, 1)) == []

    @pytest.mark.asyncio
    async def test_reschedule_other_account(self, workspace, alice, bob):
        category = await workspace.add_category(alice.account_id, "Home")
        task = await workspace.add_task(alice.account_id, category.category_id, "Call mom")
        item = await workspace.plan_task(alice.account_id, task.task_id, date(2024, 6, 1))

        with pytest.raises(NotFoundError):
            await workspace.reschedule(bob.account_id, item.agenda_id, date(2024, 6, 3))

    @pytest.mark.asyncio
    async def test_remove(self, workspace, alice):
        category = await workspace.add_category(alice.account_id, "Home")
        task = await workspace.add_task(alice.account_id, category.category_id, "Call mom")
        item = await workspace.plan_task(alice.account_id, task.task_id, date(2024, 6, 1))

        await workspace.remove_agenda_item(alice.account_id, item.agenda_id)

        assert await workspace.list_agenda(alice.account_id, date(2024, 6, 1)) == []
        assert await workspace.get_task(alice.account_id, task.task_id) is not None


class TestKpis:
    """Tests for the dashboard counters."""

    @pytest.mark.asyncio
    async def test_counts(self, workspace, roles, admin, alice):
        await roles.set_role(alice.account_id, Role.POWER_USER, admin.account_id)
        category = await workspace.add_category(alice.account_id, "Home")
        first = await workspace.add_task(alice.account_id, category.category_id, "A")
        await workspace.add_task(alice.account_id, category.category_id, "B")
        await workspace.set_task_completed(alice.account_id, first.task_id, True)
        await workspace.plan_task(alice.account_id, first.task_id, date(2024, 6, 1))
        await workspace.plan_task(alice.account_id, first.task_id, date(2024, 6, 8))
        await workspace.plan_task(alice.account_id, first.task_id, date(2024, 6, 9))

        kpis = await workspace.kpis(alice.account_id, today=date(2024, 6, 1))

        assert kpis.total_tasks == 2
        assert kpis.open_tasks == 1
        assert kpis.completed_tasks == 1
        assert kpis.agenda_today == 1
        assert kpis.agenda_next_7_days == 2
        assert kpis.has_data

    @pytest.mark.asyncio
    async def test_empty(self, workspace, admin):
        kpis = await workspace.kpis(admin.account_id, today=date(2024, 6, 1))
        assert not kpis.has_data

    @pytest.mark.asyncio
    async def test_user_rejected(self, workspace, alice):
        with pytest.raises(UnauthorizedError):
            await workspace.kpis(alice.account_id)
