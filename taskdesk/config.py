"""
Configuration management for TaskDesk.

All configuration is done via environment variables.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for a local desktop install
    - Secrets are never logged or exposed in error messages

How to change safely:
    - Add new settings with defaults that keep existing installs working
    - Keep the TM_ADMIN_* names, existing installs seed their admin from them
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


def _default_db_path() -> str:
    base = os.getenv("XDG_DATA_HOME") or os.path.join(os.path.expanduser("~"), ".local", "share")
    return os.path.join(base, "taskdesk", "taskdesk.db")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class StorageConfig:
    """Local storage configuration.

    Attributes:
        db_path: SQLite database file
        wal_mode: SQLite WAL mode enabled
        busy_timeout_ms: SQLite busy timeout in milliseconds
    """

    db_path: str = field(default_factory=_default_db_path)
    wal_mode: bool = True
    busy_timeout_ms: int = 5000

    @classmethod
    def from_env(cls) -> StorageConfig:
        """Load configuration from environment variables."""
        return cls(
            db_path=os.getenv("TASKDESK_DB_PATH", _default_db_path()),
            wal_mode=_env_bool("TASKDESK_SQLITE_WAL_MODE", "true"),
            busy_timeout_ms=int(os.getenv("TASKDESK_SQLITE_BUSY_TIMEOUT_MS", "5000")),
        )


@dataclass(frozen=True)
class IdentityConfig:
    """Password and lockout policy.

    Attributes:
        min_password_length: Minimum accepted password length
        max_failed_attempts: Bad passwords before a temporary lockout (0 = never)
        lockout_minutes: Length of the temporary lockout
        password_iterations: PBKDF2 iterations for new hashes
    """

    min_password_length: int = 6
    max_failed_attempts: int = 5
    lockout_minutes: int = 15
    password_iterations: int = 260_000

    @classmethod
    def from_env(cls) -> IdentityConfig:
        """Load configuration from environment variables."""
        return cls(
            min_password_length=int(os.getenv("TASKDESK_MIN_PASSWORD_LENGTH", "6")),
            max_failed_attempts=int(os.getenv("TASKDESK_MAX_FAILED_ATTEMPTS", "5")),
            lockout_minutes=int(os.getenv("TASKDESK_LOCKOUT_MINUTES", "15")),
            password_iterations=int(os.getenv("TASKDESK_PASSWORD_ITERATIONS", "260000")),
        )


@dataclass(frozen=True)
class SeedConfig:
    """Start-up seeding configuration.

    Attributes:
        admin_email: Email of the admin account to create (optional)
        admin_password: Password for that account (optional)
        demo_data: Whether to add a demo category, task and agenda entry
    """

    admin_email: str | None = None
    admin_password: str | None = None
    demo_data: bool = True

    @classmethod
    def from_env(cls) -> SeedConfig:
        """Load configuration from environment variables."""
        return cls(
            admin_email=os.getenv("TM_ADMIN_EMAIL") or None,
            admin_password=os.getenv("TM_ADMIN_PASSWORD") or None,
            demo_data=_env_bool("TASKDESK_SEED_DEMO_DATA", "true"),
        )

    @property
    def admin_configured(self) -> bool:
        return bool(
            self.admin_email
            and self.admin_email.strip()
            and self.admin_password
            and self.admin_password.strip()
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        )


@dataclass
class AppConfig:
    """Complete application configuration.

    Attributes:
        storage: Local storage configuration
        identity: Password and lockout policy
        seed: Start-up seeding configuration
        observability: Logging configuration
    """

    storage: StorageConfig = field(default_factory=StorageConfig)
    identity: IdentityConfig = field(default_factory=IdentityConfig)
    seed: SeedConfig = field(default_factory=SeedConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If configuration is invalid.
        """
        config = cls(
            storage=StorageConfig.from_env(),
            identity=IdentityConfig.from_env(),
            seed=SeedConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not self.storage.db_path:
            raise ValueError("TASKDESK_DB_PATH must not be empty")
        if self.identity.min_password_length < 1:
            raise ValueError("TASKDESK_MIN_PASSWORD_LENGTH must be at least 1")
        if self.identity.max_failed_attempts < 0:
            raise ValueError("TASKDESK_MAX_FAILED_ATTEMPTS must not be negative")
        if self.identity.lockout_minutes < 1:
            raise ValueError("TASKDESK_LOCKOUT_MINUTES must be at least 1")
        if self.identity.password_iterations < 1:
            raise ValueError("TASKDESK_PASSWORD_ITERATIONS must be at least 1")
        if self.observability.log_format not in ("json", "text"):
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: json, text"
            )
        if bool(self.seed.admin_email) != bool(self.seed.admin_password):
            logger.warning(
                "Only one of TM_ADMIN_EMAIL / TM_ADMIN_PASSWORD is set; admin seeding is skipped"
            )

        parent = Path(self.storage.db_path).parent
        if not parent.exists():
            logger.warning(f"Data directory does not exist: {parent}. It will be created on first write.")

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Configuration loaded",
            extra={
                "db_path": self.storage.db_path,
                "wal_mode": self.storage.wal_mode,
                "max_failed_attempts": self.identity.max_failed_attempts,
                "lockout_minutes": self.identity.lockout_minutes,
                "admin_email": self.seed.admin_email,
                "admin_password": "***" if self.seed.admin_password else None,
                "demo_data": self.seed.demo_data,
                "log_level": self.observability.log_level,
            },
        )
