"""
Pytest fixtures for testing.

Provides:
- Async database session with rollback
- Test client with auth helpers
- Factory fixtures for creating test data
- A controllable clock for expiry tests
"""

from datetime import datetime, timedelta
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from propdesk.main import app
from propdesk.models.base import Base
from propdesk.models.user import User
from propdesk.api.dependencies.database import get_db
from propdesk.rbac.engine import RBACEngine
from propdesk.rbac.repositories import UserRoleRepository
from propdesk.rbac.service import RBACService
from propdesk.rbac.types import PermissionAction, PermissionResource
from propdesk.services.auth import AuthService
from propdesk.utils.timezone import UTC


# Test database URL (SQLite in-memory for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # SAVEPOINT support under aiosqlite
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create database session with automatic rollback.

    Each test gets a fresh transaction that's rolled back after.
    """
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client with database session override.
    """

    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


# ============ Clock ============


class FrozenClock:
    """Clock for the RBAC engine that only moves when told to."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


# ============ Service Fixtures ============


@pytest.fixture
def service(db: AsyncSession) -> RBACService:
    return RBACService(db)


@pytest.fixture
def engine(db: AsyncSession, clock: FrozenClock) -> RBACEngine:
    return RBACEngine(UserRoleRepository(db), clock=clock)


# ============ Factory Fixtures ============


class UserFactory:
    """Factory for creating test users."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        email: str | None = None,
        name: str = "Test User",
        is_active: bool = True,
    ) -> User:
        """Create a user in the database."""
        email = email or f"test-{uuid4().hex[:8]}@example.com"

        user = User(email=email, name=name, is_active=is_active)
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)
        return user


@pytest_asyncio.fixture
async def user_factory(db: AsyncSession) -> UserFactory:
    """Fixture that provides UserFactory."""
    return UserFactory(db)


@pytest_asyncio.fixture
async def test_user(user_factory: UserFactory) -> User:
    """Create a standard test user."""
    return await user_factory.create()


class RoleFactory:
    """Creates roles with the given (action, resource) permissions linked."""

    def __init__(self, service: RBACService):
        self.service = service

    async def permission(self, action: PermissionAction, resource: PermissionResource):
        existing = await self.service.get_permission(action, resource)
        if existing is not None:
            return existing
        return await self.service.create_permission(action, resource)

    async def create(
        self,
        name: str | None = None,
        permissions: list[tuple[PermissionAction, PermissionResource]] = (),
        **kwargs,
    ):
        name = name or f"role-{uuid4().hex[:8]}"
        role = await self.service.create_role(
            name=name,
            display_name=kwargs.pop("display_name", name.title()),
            **kwargs,
        )
        for action, resource in permissions:
            permission = await self.permission(action, resource)
            await self.service.assign_permission_to_role(role.id, permission.id)
        return await self.service.get_role(role.id)


@pytest.fixture
def role_factory(service: RBACService) -> RoleFactory:
    return RoleFactory(service)


# ============ Auth Helpers ============


def get_auth_headers(user: User) -> dict[str, str]:
    """Helper to get auth headers for any user."""
    token = AuthService().create_access_token(user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict[str, str]:
    """Get auth headers for test user."""
    return get_auth_headers(test_user)


@pytest_asyncio.fixture
async def admin_user(user_factory: UserFactory, role_factory: RoleFactory, service: RBACService) -> User:
    """A user holding every CRUD permission on roles, permissions and users."""
    user = await user_factory.create(email="admin@example.com", name="Admin")
    role = await role_factory.create(
        name="test_admin",
        permissions=[
            (action, resource)
            for resource in (PermissionResource.ROLE, PermissionResource.PERMISSION, PermissionResource.USER)
            for action in (
                PermissionAction.CREATE,
                PermissionAction.READ,
                PermissionAction.UPDATE,
                PermissionAction.DELETE,
            )
        ],
    )
    await service.assign_role(user.id, role.id)
    return user


@pytest_asyncio.fixture
async def admin_auth_headers(admin_user: User) -> dict[str, str]:
    """Get auth headers for admin user."""
    return get_auth_headers(admin_user)


@pytest.fixture
def headers_for():
    """Build auth headers for an arbitrary user."""
    return get_auth_headers
