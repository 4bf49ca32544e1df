"""
Unit tests for role assignment and account administration.

Tests cover:
- Single-role assignment
- Admin-only checks
- Block / unblock
- Account soft-deletion
"""

import pytest

from taskdesk.errors import InvalidOperationError, NotFoundError, UnauthorizedError
from taskdesk.store import FAR_FUTURE_MS, Role


class TestSetRole:
    """Tests for RolePolicy.set_role."""

    @pytest.mark.asyncio
    async def test_exactly_one_role(self, roles, identity, admin, alice):
        """After set_role the account holds only the target role."""
        await identity.add_to_role(alice.account_id, Role.POWER_USER)

        updated = await roles.set_role(alice.account_id, Role.ADMIN, admin.account_id)

        assert updated.roles == {"Admin"}
        assert await identity.get_roles(alice.account_id) == {"Admin"}

    @pytest.mark.asyncio
    async def test_role_by_name(self, roles, identity, admin, alice):
        await roles.set_role(alice.account_id, "poweruser", admin.account_id)
        assert await identity.get_roles(alice.account_id) == {"PowerUser"}

    @pytest.mark.asyncio
    async def test_idempotent(self, roles, identity, admin, alice):
        await roles.set_role(alice.account_id, Role.USER, admin.account_id)
        await roles.set_role(alice.account_id, Role.USER, admin.account_id)
        assert await identity.get_roles(alice.account_id) == {"User"}

    @pytest.mark.asyncio
    async def test_non_admin_rejected(self, roles, identity, alice, bob):
        with pytest.raises(UnauthorizedError):
            await roles.set_role(bob.account_id, Role.ADMIN, alice.account_id)
        assert await identity.get_roles(bob.account_id) == {"User"}

    @pytest.mark.asyncio
    async def test_power_user_rejected(self, roles, admin, alice, bob):
        await roles.set_role(alice.account_id, Role.POWER_USER, admin.account_id)
        with pytest.raises(UnauthorizedError):
            await roles.set_role(bob.account_id, Role.POWER_USER, alice.account_id)

    @pytest.mark.asyncio
    async def test_invalid_role(self, roles, admin, alice):
        with pytest.raises(InvalidOperationError):
            await roles.set_role(alice.account_id, "Superuser", admin.account_id)

    @pytest.mark.asyncio
    async def test_unknown_target(self, roles, admin):
        with pytest.raises(NotFoundError):
            await roles.set_role("missing", Role.USER, admin.account_id)

    @pytest.mark.asyncio
    async def test_deleted_admin_loses_rights(self, roles, identity, admin, alice):
        await identity.mark_deleted(admin.account_id)
        with pytest.raises(UnauthorizedError):
            await roles.set_role(alice.account_id, Role.ADMIN, admin.account_id)


class TestLockout:
    """Tests for block / unblock."""

    @pytest.mark.asyncio
    async def test_block(self, roles, identity, admin, alice):
        blocked = await roles.block(alice.account_id, admin.account_id)

        assert blocked.lockout_until == FAR_FUTURE_MS
        stored = await identity.find_by_id(alice.account_id)
        assert stored.is_locked()

    @pytest.mark.asyncio
    async def test_unblock_resets_attempts(self, roles, identity, admin, alice):
        await identity.record_failed_attempt(alice.account_id, 5, 60_000)
        await roles.block(alice.account_id, admin.account_id)

        await roles.unblock(alice.account_id, admin.account_id)

        stored = await identity.find_by_id(alice.account_id)
        assert stored.lockout_until is None
        assert stored.failed_attempts == 0

    @pytest.mark.asyncio
    async def test_requires_admin(self, roles, alice, bob):
        with pytest.raises(UnauthorizedError):
            await roles.block(bob.account_id, alice.account_id)

    @pytest.mark.asyncio
    async def test_admin_may_block_self(self, roles, admin):
        blocked = await roles.block(admin.account_id, admin.account_id)
        assert blocked.is_locked()


class TestSoftDeleteAccount:
    """Tests for account deletion."""

    @pytest.mark.asyncio
    async def test_delete_sets_flags(self, roles, identity, admin, alice):
        await roles.soft_delete_account(alice.account_id, admin.account_id)

        stored = await identity.find_by_id(alice.account_id)
        assert stored.is_deleted
        assert stored.lockout_until == FAR_FUTURE_MS
        assert await identity.find_active(alice.account_id) is None

    @pytest.mark.asyncio
    async def test_cannot_delete_self(self, roles, identity, admin):
        with pytest.raises(InvalidOperationError):
            await roles.soft_delete_account(admin.account_id, admin.account_id)
        assert await identity.find_active(admin.account_id) is not None

    @pytest.mark.asyncio
    async def test_delete_twice(self, roles, admin, alice):
        await roles.soft_delete_account(alice.account_id, admin.account_id)
        with pytest.raises(NotFoundError):
            await roles.soft_delete_account(alice.account_id, admin.account_id)

    @pytest.mark.asyncio
    async def test_list_excludes_deleted(self, roles, admin, alice, bob):
        await roles.soft_delete_account(bob.account_id, admin.account_id)

        emails = [a.email for a in await roles.list_accounts(admin.account_id)]
        assert emails == ["admin@example.com", "alice@example.com"]

    @pytest.mark.asyncio
    async def test_list_requires_admin(self, roles, alice):
        with pytest.raises(UnauthorizedError):
            await roles.list_accounts(alice.account_id)
