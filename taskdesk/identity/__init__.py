"""
Identity module for TaskDesk - accounts, credentials and login.

This module handles:
- Account and role-membership persistence
- PBKDF2 password hashing
- The authentication gate and registration
"""

from .auth import Authenticator, AuthResult
from .identity_store import IdentityStore, normalize_email
from .passwords import PasswordHasher

__all__ = [
    "Authenticator",
    "AuthResult",
    "IdentityStore",
    "normalize_email",
    "PasswordHasher",
]
