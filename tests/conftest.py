"""
Shared fixtures for TaskDesk tests.

Every test gets its own SQLite file in a temporary directory. Password
hashing uses a low iteration count to keep the suite fast.
"""

import os
import tempfile

import pytest

from taskdesk.access import CascadePolicy, RolePolicy
from taskdesk.config import AppConfig, IdentityConfig, SeedConfig, StorageConfig
from taskdesk.identity import Authenticator, IdentityStore, PasswordHasher
from taskdesk.store import DomainStore, Role
from taskdesk.workspace import Workspace

FAST_ITERATIONS = 1000
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-secret"


@pytest.fixture
def data_dir():
    """Create temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def db_path(data_dir):
    return os.path.join(data_dir, "taskdesk.db")


@pytest.fixture
def identity_config():
    return IdentityConfig(password_iterations=FAST_ITERATIONS)


@pytest.fixture
def app_config(db_path, identity_config):
    """Configuration with a seeded admin and no demo data."""
    return AppConfig(
        storage=StorageConfig(db_path=db_path, wal_mode=False),
        identity=identity_config,
        seed=SeedConfig(admin_email=ADMIN_EMAIL, admin_password=ADMIN_PASSWORD, demo_data=False),
    )


@pytest.fixture
async def store(db_path):
    """Initialized store on a fresh database."""
    store = DomainStore(db_path, wal_mode=False)
    await store.initialize()
    return store


@pytest.fixture
def identity(store):
    return IdentityStore(store, PasswordHasher(FAST_ITERATIONS))


@pytest.fixture
def cascade(store):
    return CascadePolicy(store)


@pytest.fixture
def roles(identity):
    return RolePolicy(identity)


@pytest.fixture
def auth(identity, cascade, identity_config):
    return Authenticator(identity, cascade, identity_config)


@pytest.fixture
def workspace(store, cascade, roles):
    return Workspace(store, cascade, roles)


@pytest.fixture
async def admin(identity):
    """An account holding only the Admin role."""
    return await identity.create_account(ADMIN_EMAIL, ADMIN_PASSWORD, "Admin", role=Role.ADMIN)


@pytest.fixture
async def alice(auth):
    return await auth.register("alice@example.com", "alice-pw", "Alice")


@pytest.fixture
async def bob(auth):
    return await auth.register("bob@example.com", "bob-pw-1", "Bob")
