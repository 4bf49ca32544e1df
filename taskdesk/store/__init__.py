"""
Store module for TaskDesk - SQLite persistence.

This module handles:
- Schema creation and the fixed role rows
- Generic select/count/insert/update helpers
- Atomic multi-row transactions for cascades and role changes

Owner scoping is not applied here; see taskdesk.access.
"""

from .domain_store import DomainStore
from .records import (
    FAR_FUTURE_MS,
    Account,
    AgendaEntry,
    AgendaItem,
    Category,
    Role,
    TaskItem,
    TaskStatusFilter,
)

__all__ = [
    "DomainStore",
    "FAR_FUTURE_MS",
    "Account",
    "AgendaEntry",
    "AgendaItem",
    "Category",
    "Role",
    "TaskItem",
    "TaskStatusFilter",
]
