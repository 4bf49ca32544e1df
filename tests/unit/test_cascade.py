"""
Unit tests for the soft-delete cascade.

Tests cover:
- Category -> Task -> AgendaItem cascade
- NotFound for rows of other accounts, with no mutation
- Rollback of a failed cascade
- Default categories on first use
"""

from datetime import date

import pytest

from taskdesk.access import DEFAULT_CATEGORY_NAMES, OwnedRepository
from taskdesk.errors import NotFoundError, StorageFailureError


async def _plan(workspace, account_id, name="Work items"):
    category = await workspace.add_category(account_id, name)
    first = await workspace.add_task(account_id, category.category_id, "First")
    second = await workspace.add_task(account_id, category.category_id, "Second")
    agenda = await workspace.plan_task(account_id, first.task_id, date(2024, 6, 1))
    return category, first, second, agenda


class TestCategoryCascade:
    """Tests for deleting a category."""

    @pytest.mark.asyncio
    async def test_cascade_flags_all_descendants(self, store, cascade, workspace, alice):
        category, first, second, agenda = await _plan(workspace, alice.account_id)

        result = await cascade.soft_delete_category(category.category_id, alice.account_id)

        assert result.category_ids == [category.category_id]
        assert result.task_ids == [first.task_id, second.task_id]
        assert result.agenda_ids == [agenda.agenda_id]
        assert result.total == 4

        raw = OwnedRepository.including_deleted(store, alice.account_id)
        assert (await raw.get_category(category.category_id)).is_deleted
        assert (await raw.get_task(first.task_id)).is_deleted
        assert (await raw.get_task(second.task_id)).is_deleted
        assert (await raw.get_agenda_item(agenda.agenda_id)).is_deleted

    @pytest.mark.asyncio
    async def test_other_account_is_not_found(self, store, cascade, workspace, alice, bob):
        """Deleting another account's category fails and changes nothing."""
        category, first, _, _ = await _plan(workspace, alice.account_id)

        with pytest.raises(NotFoundError):
            await cascade.soft_delete_category(category.category_id, bob.account_id)

        repo = await OwnedRepository.for_actor(store, alice.account_id)
        assert await repo.get_category(category.category_id) is not None
        assert await repo.get_task(first.task_id) is not None

    @pytest.mark.asyncio
    async def test_second_delete_is_not_found(self, cascade, workspace, alice):
        category, *_ = await _plan(workspace, alice.account_id)
        await cascade.soft_delete_category(category.category_id, alice.account_id)

        with pytest.raises(NotFoundError):
            await cascade.soft_delete_category(category.category_id, alice.account_id)

    @pytest.mark.asyncio
    async def test_already_deleted_children_untouched(self, cascade, workspace, alice):
        """Rows deleted earlier are not reported again."""
        category, first, second, agenda = await _plan(workspace, alice.account_id)
        await cascade.soft_delete_task(first.task_id, alice.account_id)

        result = await cascade.soft_delete_category(category.category_id, alice.account_id)

        assert result.task_ids == [second.task_id]
        assert result.agenda_ids == []

    @pytest.mark.asyncio
    async def test_failure_rolls_back(self, store, cascade, workspace, alice, monkeypatch):
        """A failure mid-cascade leaves every row as it was."""
        category, first, _, agenda = await _plan(workspace, alice.account_id)

        def broken(*args, **kwargs):
            raise StorageFailureError("disk full", operation="update")

        monkeypatch.setattr(cascade, "_cascade_to_agenda", broken)
        with pytest.raises(StorageFailureError):
            await cascade.soft_delete_category(category.category_id, alice.account_id)

        repo = await OwnedRepository.for_actor(store, alice.account_id)
        assert await repo.get_category(category.category_id) is not None
        assert await repo.get_task(first.task_id) is not None
        assert await repo.get_agenda_item(agenda.agenda_id) is not None


    @pytest.mark.asyncio
    async def test_empty_category(self, cascade, workspace, alice):
        category = await workspace.add_category(alice.account_id, "Empty")

        result = await cascade.soft_delete_category(category.category_id, alice.account_id)

        assert result.category_ids == [category.category_id]
        assert result.task_ids == []
        assert result.agenda_ids == []


class TestTaskCascade:
    """Tests for deleting tasks and agenda items."""

    @pytest.mark.asyncio
    async def test_task_cascade(self, store, cascade, workspace, alice):
        category, first, second, agenda = await _plan(workspace, alice.account_id)

        result = await cascade.soft_delete_task(first.task_id, alice.account_id)

        assert result.task_ids == [first.task_id]
        assert result.agenda_ids == [agenda.agenda_id]
        repo = await OwnedRepository.for_actor(store, alice.account_id)
        assert await repo.get_category(category.category_id) is not None
        assert await repo.get_task(second.task_id) is not None

    @pytest.mark.asyncio
    async def test_task_without_agenda(self, cascade, workspace, alice):
        _, _, second, _ = await _plan(workspace, alice.account_id)

        result = await cascade.soft_delete_task(second.task_id, alice.account_id)

        assert result.task_ids == [second.task_id]
        assert result.agenda_ids == []

    @pytest.mark.asyncio
    async def test_task_of_other_account(self, cascade, workspace, alice, bob):
        _, first, _, _ = await _plan(workspace, alice.account_id)
        with pytest.raises(NotFoundError):
            await cascade.soft_delete_task(first.task_id, bob.account_id)

    @pytest.mark.asyncio
    async def test_agenda_item_only(self, store, cascade, workspace, alice):
        _, first, _, agenda = await _plan(workspace, alice.account_id)

        result = await cascade.soft_delete_agenda_item(agenda.agenda_id, alice.account_id)

        assert result.agenda_ids == [agenda.agenda_id]
        repo = await OwnedRepository.for_actor(store, alice.account_id)
        assert await repo.get_task(first.task_id) is not None

    @pytest.mark.asyncio
    async def test_deleted_actor_cannot_delete(self, cascade, identity, workspace, alice):
        _, first, _, _ = await _plan(workspace, alice.account_id)
        await identity.mark_deleted(alice.account_id)

        with pytest.raises(NotFoundError):
            await cascade.soft_delete_task(first.task_id, alice.account_id)


class TestDefaultCategories:
    """Tests for starter categories."""

    @pytest.mark.asyncio
    async def test_created_once(self, store, identity, cascade):
        account = await identity.create_account("new@example.com", "secret1")

        created = await cascade.ensure_default_categories(account.account_id)
        again = await cascade.ensure_default_categories(account.account_id)

        assert [c.name for c in created] == list(DEFAULT_CATEGORY_NAMES)
        assert again == []
        repo = await OwnedRepository.for_actor(store, account.account_id)
        assert await repo.count_categories() == 2

    @pytest.mark.asyncio
    async def test_user_category_counts(self, store, identity, cascade, workspace):
        """Any live category, not just the defaults, suppresses creation."""
        account = await identity.create_account("own@example.com", "secret1")
        await workspace.add_category(account.account_id, "Mine")

        assert await cascade.ensure_default_categories(account.account_id) == []

        repo = await OwnedRepository.for_actor(store, account.account_id)
        assert [c.name for c in await repo.list_categories()] == ["Mine"]

    @pytest.mark.asyncio
    async def test_recreated_after_all_deleted(self, cascade, workspace, alice):
        """Only live categories count."""
        for category in await workspace.list_categories(alice.account_id):
            await cascade.soft_delete_category(category.category_id, alice.account_id)

        created = await cascade.ensure_default_categories(alice.account_id)
        assert len(created) == 2

    @pytest.mark.asyncio
    async def test_unknown_actor(self, cascade):
        assert await cascade.ensure_default_categories("missing") == []
