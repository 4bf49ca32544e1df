"""
Service wiring for TaskDesk.

Builds every component from an AppConfig and hands them around
explicitly. There is no global service locator: the HTTP app keeps one
Services instance on app.state, the CLI builds its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .access.cascade import CascadePolicy
from .access.roles import RolePolicy
from .config import AppConfig
from .identity.auth import Authenticator
from .identity.identity_store import IdentityStore
from .identity.passwords import PasswordHasher
from .seed import Seeder
from .store.domain_store import DomainStore
from .workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """All TaskDesk components sharing one store.

    Attributes:
        config: Application configuration
        store: SQLite store
        identity: Account and role persistence
        cascade: Soft-delete cascades and default categories
        roles: Role-gated administration
        auth: Login and registration
        workspace: Category, task and agenda operations
    """

    config: AppConfig
    store: DomainStore
    identity: IdentityStore
    cascade: CascadePolicy
    roles: RolePolicy
    auth: Authenticator
    workspace: Workspace

    @classmethod
    def build(cls, config: AppConfig) -> Services:
        store = DomainStore.from_config(config.storage)
        identity = IdentityStore(store, PasswordHasher(config.identity.password_iterations))
        cascade = CascadePolicy(store)
        roles = RolePolicy(identity)
        return cls(
            config=config,
            store=store,
            identity=identity,
            cascade=cascade,
            roles=roles,
            auth=Authenticator(identity, cascade, config.identity),
            workspace=Workspace(store, cascade, roles),
        )

    async def start(self) -> None:
        """Create the schema and run start-up seeding."""
        await self.store.initialize()
        await Seeder(self.store, self.identity).run(self.config.seed)
        logger.info("TaskDesk services ready", extra={"db_path": str(self.store.get_db_path())})
