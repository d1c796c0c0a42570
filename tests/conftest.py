"""
Global test fixtures for mongo_identity.

This module provides shared fixtures for all tests including:
- Mock MongoDB (mongomock-motor) with the identity indexes
- Stores and managers wired to the mock database
- Store doubles built from unittest.mock
"""

from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from mongo_identity.config import Settings
from mongo_identity.core.security import PasswordVerificationResult


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def identity_settings() -> Settings:
    """Settings independent of the environment and any .env file."""
    return Settings(_env_file=None, token_secret_key="test-secret-key")


# =============================================================================
# MongoDB Fixtures (mongomock-motor)
# =============================================================================

@pytest_asyncio.fixture
async def mock_async_mongo_client():
    """
    Create an async mock MongoDB client using mongomock-motor.
    """
    from mongomock_motor import AsyncMongoMockClient
    client = AsyncMongoMockClient()
    yield client
    client.close()


@pytest_asyncio.fixture
async def mock_identity_db(mock_async_mongo_client):
    """Provide mock identity database."""
    db = mock_async_mongo_client["identity_db"]
    # Unique indexes like the real deployment (see create_indexes)
    await db.users.create_index("normalized_user_name", unique=True)
    await db.roles.create_index("normalized_name", unique=True)
    yield db


# =============================================================================
# Password Hasher Double
# =============================================================================

class PlainTextHasher:
    """Reversible hasher that keeps tests fast and hashes readable."""

    def hash_password(self, user, password):
        return f"plain:{password}"

    def verify_hashed_password(self, user, hashed_password, provided_password):
        if hashed_password == f"plain:{provided_password}":
            return PasswordVerificationResult.SUCCESS
        return PasswordVerificationResult.FAILED


@pytest.fixture
def plain_hasher() -> PlainTextHasher:
    return PlainTextHasher()


# =============================================================================
# Store & Manager Fixtures
# =============================================================================

@pytest.fixture
def user_store(mock_identity_db, identity_settings):
    """MongoUserStore over the mock database."""
    from mongo_identity.stores.user_store import MongoUserStore
    return MongoUserStore(mock_identity_db, settings=identity_settings)


@pytest.fixture
def role_store(mock_identity_db, identity_settings):
    """MongoRoleStore over the mock database."""
    from mongo_identity.stores.role_store import MongoRoleStore
    return MongoRoleStore(mock_identity_db, settings=identity_settings)


@pytest.fixture
def user_manager(user_store, identity_settings, plain_hasher):
    """UserManager with default validators and the plain text hasher."""
    from mongo_identity.services.user_manager import UserManager
    return UserManager(user_store, options=identity_settings, password_hasher=plain_hasher)


@pytest.fixture
def role_manager(role_store):
    """RoleManager with default validators."""
    from mongo_identity.services.role_manager import RoleManager
    return RoleManager(role_store)


@pytest.fixture
def mock_user_store():
    """
    Create a fully mocked user store.

    Async store methods are AsyncMock (from the class spec), so you can
    configure return values:

        mock_user_store.find_by_name.return_value = None
    """
    from mongo_identity.stores.user_store import MongoUserStore
    from mongo_identity.schemas.result import IdentityResult
    store = MagicMock(spec=MongoUserStore)
    store.create.return_value = IdentityResult.success()
    store.update.return_value = IdentityResult.success()
    store.delete.return_value = IdentityResult.success()
    store.find_by_name.return_value = None
    store.find_by_email.return_value = None
    store.find_by_login.return_value = None
    store.is_in_role.return_value = False
    return store


@pytest.fixture
def mock_role_store():
    """Create a fully mocked role store."""
    from mongo_identity.stores.role_store import MongoRoleStore
    from mongo_identity.schemas.result import IdentityResult
    store = MagicMock(spec=MongoRoleStore)
    store.create.return_value = IdentityResult.success()
    store.update.return_value = IdentityResult.success()
    store.delete.return_value = IdentityResult.success()
    store.find_by_name.return_value = None
    return store


@pytest.fixture
def non_queryable_store():
    """Factory for store doubles that lack the query capability."""
    def _make(store_cls) -> MagicMock:
        return MagicMock(spec=[name for name in dir(store_cls) if name != "query"])
    return _make


# =============================================================================
# Entity Factories
# =============================================================================

PASSWORD = "Passw0rd!"


@pytest.fixture
def valid_password() -> str:
    """A password accepted by the default password options."""
    return PASSWORD


@pytest.fixture
def make_user(user_manager):
    """
    Async factory creating users through the user manager.

    Usage in tests:
        user = await make_user("alice", email="alice@example.com")
    """
    from mongo_identity.models.user import IdentityUser

    async def _make(user_name: str, email: str = None, password: str = None):
        user = IdentityUser(user_name=user_name, email=email)
        result = await user_manager.create(user, password)
        assert result.succeeded, str(result)
        return user
    return _make


@pytest.fixture
def make_role(role_manager):
    """Async factory creating roles through the role manager."""
    from mongo_identity.models.role import IdentityRole

    async def _make(name: str):
        role = IdentityRole(name=name)
        result = await role_manager.create(role)
        assert result.succeeded, str(result)
        return role
    return _make
