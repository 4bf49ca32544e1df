"""
Start-up seeding for TaskDesk.

Creates the admin account named in the configuration and, optionally, a
small set of demo rows for it. Seeding is an administrative context: its
existence checks include soft-deleted rows, so a demo row the admin
deleted is not recreated on the next start.

Invariants:
    - Seeding is idempotent
    - The seeded admin holds only the Admin role
"""

from __future__ import annotations

import logging
from datetime import date

from .access.ownership import OwnedRepository
from .config import SeedConfig
from .identity.identity_store import IdentityStore
from .store.domain_store import DomainStore
from .store.records import Account, Role

logger = logging.getLogger(__name__)

DEMO_CATEGORY_NAMES = ("General", "Work")
DEMO_TASK_TITLE = "Demo Task"
DEMO_TASK_DESCRIPTION = "Seeded example task."


class Seeder:
    """Seeds the admin account and its demo data."""

    def __init__(self, store: DomainStore, identity: IdentityStore) -> None:
        self.store = store
        self.identity = identity

    async def run(self, config: SeedConfig, today: date | None = None) -> Account | None:
        """Seed according to configuration.

        Returns:
            The admin account, or None when no admin is configured
        """
        if not config.admin_configured:
            logger.info("No admin configured, skipping seed")
            return None

        admin = await self.ensure_admin(config.admin_email or "", config.admin_password or "")
        if config.demo_data:
            await self.ensure_demo_data(admin.account_id, today or date.today())
        return admin

    async def ensure_admin(self, email: str, password: str) -> Account:
        admin = await self.identity.find_by_email(email)
        if admin is None:
            admin = await self.identity.create_account(
                email, password, display_name="Admin", role=Role.ADMIN
            )
            logger.info("Seeded admin account", extra={"account_id": admin.account_id})
        elif admin.roles != {Role.ADMIN.value}:
            await self.identity.replace_roles(admin.account_id, Role.ADMIN)
            admin.roles = {Role.ADMIN.value}
        return admin

    async def ensure_demo_data(self, owner_id: str, today: date) -> None:
        repo = OwnedRepository.including_deleted(self.store, owner_id)

        category = await repo.first_category()
        if category is None:
            ids = [
                await self.store.insert("categories", {"name": name, "owner_id": owner_id})
                for name in DEMO_CATEGORY_NAMES
            ]
            category_id = ids[0]
        else:
            category_id = category.category_id

        task = await repo.first_task()
        if task is None:
            task_id = await self.store.insert(
                "tasks",
                {
                    "title": DEMO_TASK_TITLE,
                    "description": DEMO_TASK_DESCRIPTION,
                    "category_id": category_id,
                    "owner_id": owner_id,
                },
            )
        else:
            task_id = task.task_id

        if not await repo.agenda_for_tasks([task_id]):
            await self.store.insert(
                "agenda_items",
                {"task_id": task_id, "planned_date": today.isoformat(), "owner_id": owner_id},
            )
        logger.info("Demo data ensured", extra={"account_id": owner_id})
