"""
Authentication gate and registration for TaskDesk.

Invariants:
    - The lockout check runs before the password check
    - A deleted account never authenticates, even with its lockout cleared
    - Unknown email and wrong password raise the same error
    - New accounts get the User role and the default categories
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..access.cascade import CascadePolicy
from ..config import IdentityConfig
from ..errors import AccountLockedError, InvalidCredentialsError, InvalidOperationError
from ..store.records import Account, Role, now_ms
from .identity_store import IdentityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    """Identity of a successfully authenticated account."""

    account_id: str
    email: str
    display_name: str
    roles: frozenset[str]

    def has_role(self, role: Role) -> bool:
        return role.value in self.roles


class Authenticator:
    """Logs accounts in and registers new ones.

    Example:
        >>> auth = Authenticator(identity, cascade)
        >>> await auth.register("ann@example.com", "secret1")
        >>> result = await auth.authenticate("ANN@example.com", "secret1")
        >>> sorted(result.roles)
        ['User']
    """

    def __init__(
        self,
        identity: IdentityStore,
        cascade: CascadePolicy,
        config: IdentityConfig | None = None,
    ) -> None:
        self.identity = identity
        self.cascade = cascade
        self.config = config or IdentityConfig()

    async def authenticate(self, email: str, password: str, at_ms: int | None = None) -> AuthResult:
        """Check credentials.

        Args:
            email: Login email (case-insensitive)
            password: Plain-text password
            at_ms: Current time in Unix ms (defaults to now)

        Returns:
            AuthResult with the account's roles

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            AccountLockedError: Account blocked, temporarily locked or deleted
        """
        at_ms = at_ms if at_ms is not None else now_ms()

        account = await self.identity.find_by_email(email or "")
        if account is None:
            logger.info("Login failed: unknown email")
            raise InvalidCredentialsError()

        if await self.identity.is_locked_out(account, at_ms):
            logger.info("Login refused: account locked", extra={"account_id": account.account_id})
            raise AccountLockedError(account.lockout_until)

        if account.is_deleted:
            logger.warning(
                "Login refused: deleted account without lockout",
                extra={"account_id": account.account_id},
            )
            raise AccountLockedError(account.lockout_until)

        if not await self.identity.check_password(account, password or ""):
            await self.identity.record_failed_attempt(
                account.account_id,
                self.config.max_failed_attempts,
                self.config.lockout_minutes * 60_000,
                at_ms,
            )
            logger.info("Login failed: wrong password", extra={"account_id": account.account_id})
            raise InvalidCredentialsError()

        if account.failed_attempts:
            await self.identity.reset_failed_attempts(account.account_id)

        logger.info("Login succeeded", extra={"account_id": account.account_id})
        return AuthResult(
            account_id=account.account_id,
            email=account.email,
            display_name=account.display_name,
            roles=frozenset(account.roles),
        )

    async def register(
        self,
        email: str,
        password: str,
        display_name: str | None = None,
    ) -> Account:
        """Create a User account with the default categories.

        Raises:
            InvalidOperationError: Blank email or password, password too short,
                or email already registered
        """
        email = (email or "").strip()
        password = password or ""
        if not email or not password.strip():
            raise InvalidOperationError("Email and password are required")
        if "@" not in email:
            raise InvalidOperationError(f"'{email}' is not a valid email address", "email")
        if len(password) < self.config.min_password_length:
            raise InvalidOperationError(
                f"Password must be at least {self.config.min_password_length} characters",
                "password",
            )

        display_name = (display_name or "").strip() or email
        account = await self.identity.create_account(
            email, password, display_name=display_name, role=Role.USER
        )
        await self.cascade.ensure_default_categories(account.account_id)
        return account
