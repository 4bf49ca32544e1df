"""
Access module for TaskDesk - ownership, cascades and roles.

This module handles:
- The ambient owner/soft-delete filter for every domain read
- Soft-delete cascades Category -> Task -> AgendaItem
- Role assignment, lockout and account deletion by admins

Invariants:
    - Ownership failures are NotFound, role failures are Unauthorized
    - Cascades commit in a single transaction
"""

from .cascade import DEFAULT_CATEGORY_NAMES, CascadePolicy, CascadeResult
from .ownership import OwnedRepository, OwnerFilter, resolve_filter
from .roles import RolePolicy

__all__ = [
    "DEFAULT_CATEGORY_NAMES",
    "CascadePolicy",
    "CascadeResult",
    "OwnedRepository",
    "OwnerFilter",
    "resolve_filter",
    "RolePolicy",
]
