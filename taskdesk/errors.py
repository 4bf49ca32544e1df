"""
Error types for TaskDesk.

This module defines every exception raised by the core operations:
- TaskDeskError: Base exception
- NotFoundError: Entity missing or not owned by the actor
- UnauthorizedError: Role check failed
- InvalidCredentialsError: Unknown email or wrong password
- AccountLockedError: Account is blocked or temporarily locked out
- InvalidOperationError: Malformed input or forbidden action
- StorageFailureError: Underlying SQLite error
- SessionError: Missing, unknown or expired login session

Invariants:
    - All errors inherit from TaskDeskError
    - NotFoundError never reveals whether the row exists for another owner
    - Credential errors never include the password or its hash
"""

from __future__ import annotations

from typing import Any


class TaskDeskError(Exception):
    """Base exception for all TaskDesk errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "TASKDESK_ERROR"
        self.details = details or {}


class NotFoundError(TaskDeskError):
    """Entity not found.

    Raised when:
    - The row does not exist
    - The row is soft-deleted
    - The row belongs to another account

    The three cases are deliberately indistinguishable.
    """

    def __init__(self, resource_type: str, resource_id: Any) -> None:
        super().__init__(
            f"{resource_type} {resource_id} not found",
            code="NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class UnauthorizedError(TaskDeskError):
    """Actor lacks the role required for an operation."""

    def __init__(self, actor_id: str | None, required: tuple[str, ...]) -> None:
        super().__init__(
            f"Operation requires one of roles: {', '.join(required)}",
            code="UNAUTHORIZED",
            details={"actor_id": actor_id, "required_roles": list(required)},
        )
        self.actor_id = actor_id
        self.required = required


class InvalidCredentialsError(TaskDeskError):
    """Email unknown or password wrong."""

    def __init__(self) -> None:
        super().__init__("Invalid email or password", code="INVALID_CREDENTIALS")


class AccountLockedError(TaskDeskError):
    """Account is locked out.

    Attributes:
        lockout_until: Unix ms when the lockout ends
    """

    def __init__(self, lockout_until: int | None = None) -> None:
        super().__init__(
            "Account is locked",
            code="ACCOUNT_LOCKED",
            details={"lockout_until": lockout_until},
        )
        self.lockout_until = lockout_until


class InvalidOperationError(TaskDeskError):
    """Operation is not allowed or input is malformed.

    Raised when:
    - An admin tries to delete their own account
    - A name, title, email or password is blank or too short
    - An email is already registered
    """

    def __init__(self, message: str, field_name: str | None = None) -> None:
        super().__init__(
            message,
            code="INVALID_OPERATION",
            details={"field": field_name},
        )
        self.field_name = field_name


class StorageFailureError(TaskDeskError):
    """Underlying persistence error, not further classified."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(
            message,
            code="STORAGE_FAILURE",
            details={"operation": operation},
        )
        self.operation = operation


class SessionError(TaskDeskError):
    """Request carries no valid login session."""

    def __init__(self, message: str = "Login session required") -> None:
        super().__init__(message, code="SESSION_REQUIRED")
