"""
Role assignment and account administration for TaskDesk.

This module handles who may change roles and account state:
- Role checks for operations (require_role)
- Single-role assignment (set_role)
- Block / unblock through lockout
- Account soft-deletion

Invariants:
    - Only an Admin may change roles, lockouts or delete accounts
    - After set_role() the account holds exactly the target role
    - An admin cannot delete their own account
    - A deleted account is also locked until FAR_FUTURE_MS
    - Deleted or unknown target accounts are NotFound

How to change safely:
    - New roles must be added to Role and seeded by DomainStore
    - Role failures are loud (UnauthorizedError); ownership failures stay NotFound
"""

from __future__ import annotations

import logging

from ..errors import InvalidOperationError, NotFoundError, UnauthorizedError
from ..identity.identity_store import IdentityStore
from ..store.records import FAR_FUTURE_MS, Account, Role

logger = logging.getLogger(__name__)


class RolePolicy:
    """Enforces role-gated administration.

    Thread safety:
        This class is stateless apart from its IdentityStore.

    Example:
        >>> policy = RolePolicy(identity)
        >>> await policy.set_role(user_id, Role.POWER_USER, admin_id)
        >>> await identity.get_roles(user_id)
        {'PowerUser'}
    """

    def __init__(self, identity: IdentityStore) -> None:
        self.identity = identity

    async def has_role(self, actor_id: str | None, *roles: Role) -> bool:
        """Check if an active actor holds any of the given roles."""
        actor = await self.identity.find_active(actor_id)
        if actor is None:
            return False
        return any(role.value in actor.roles for role in roles)

    async def require_role(self, actor_id: str | None, *roles: Role) -> Account:
        """Check that the actor holds one of the roles and raise if not.

        Returns:
            The actor's account

        Raises:
            UnauthorizedError: If the actor is absent, deleted or lacks the roles
        """
        actor = await self.identity.find_active(actor_id)
        if actor is None or not any(role.value in actor.roles for role in roles):
            raise UnauthorizedError(actor_id, tuple(role.value for role in roles))
        return actor

    async def _target(self, account_id: str) -> Account:
        target = await self.identity.find_active(account_id)
        if target is None:
            raise NotFoundError("Account", account_id)
        return target

    async def set_role(self, account_id: str, target_role: Role | str, actor_id: str) -> Account:
        """Give an account exactly one role.

        Idempotent: assigning the role an account already has is not an error.

        Args:
            account_id: Account to change
            target_role: Admin, PowerUser or User
            actor_id: Admin performing the change

        Returns:
            The updated account

        Raises:
            UnauthorizedError: If the actor is not an Admin
            NotFoundError: If the target is unknown or deleted
            InvalidOperationError: If the role name is invalid
        """
        await self.require_role(actor_id, Role.ADMIN)
        try:
            role = Role.parse(target_role)
        except ValueError as e:
            raise InvalidOperationError(str(e), "role") from e

        target = await self._target(account_id)
        removed = await self.identity.replace_roles(target.account_id, role)
        target.roles = {role.value}

        logger.info(
            "Role assigned",
            extra={
                "account_id": account_id,
                "role": role.value,
                "removed": sorted(removed),
                "actor_id": actor_id,
            },
        )
        return target

    async def set_lockout(self, account_id: str, until_ms: int | None, actor_id: str) -> Account:
        """Set or clear an account's lockout.

        Args:
            account_id: Account to change
            until_ms: FAR_FUTURE_MS to block indefinitely, None to unblock
            actor_id: Admin performing the change

        Raises:
            UnauthorizedError: If the actor is not an Admin
            NotFoundError: If the target is unknown or deleted
        """
        await self.require_role(actor_id, Role.ADMIN)
        target = await self._target(account_id)

        await self.identity.set_lockout_until(target.account_id, until_ms)
        target.lockout_until = until_ms
        if until_ms is None:
            target.failed_attempts = 0

        logger.info(
            "Lockout changed",
            extra={"account_id": account_id, "lockout_until": until_ms, "actor_id": actor_id},
        )
        return target

    async def block(self, account_id: str, actor_id: str) -> Account:
        return await self.set_lockout(account_id, FAR_FUTURE_MS, actor_id)

    async def unblock(self, account_id: str, actor_id: str) -> Account:
        return await self.set_lockout(account_id, None, actor_id)

    async def soft_delete_account(self, account_id: str, actor_id: str) -> Account:
        """Soft-delete and block an account.

        Raises:
            UnauthorizedError: If the actor is not an Admin
            InvalidOperationError: If the actor targets their own account
            NotFoundError: If the target is unknown or already deleted
        """
        await self.require_role(actor_id, Role.ADMIN)
        if account_id == actor_id:
            raise InvalidOperationError("You cannot delete your own account", "account_id")

        target = await self._target(account_id)
        await self.identity.mark_deleted(target.account_id)
        target.is_deleted = True
        target.lockout_until = FAR_FUTURE_MS

        logger.info("Account soft-deleted", extra={"account_id": account_id, "actor_id": actor_id})
        return target

    async def list_accounts(self, actor_id: str) -> list[Account]:
        """List all non-deleted accounts ordered by email (Admin only)."""
        await self.require_role(actor_id, Role.ADMIN)
        return await self.identity.list_accounts()
