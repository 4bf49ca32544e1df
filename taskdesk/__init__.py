"""
TaskDesk - single-session task manager with owner-scoped storage.

This package implements:
- Accounts with password login, lockout and three fixed roles
- Categories, tasks and a daily agenda owned by one account each
- Soft deletion that cascades Category -> Task -> AgendaItem
- A thin HTTP surface and an admin CLI over the same operations

Invariants:
    - Every domain read is scoped to the acting account
    - Soft-deleted rows are never returned by default queries
    - An account holds exactly one role at any time
    - Rows are never physically deleted

How to change safely:
    - New queries must go through OwnedRepository or OwnerFilter
    - Multi-row mutations must run inside DomainStore.transaction()
"""

from ._version import __version__

__all__ = ["__version__"]
