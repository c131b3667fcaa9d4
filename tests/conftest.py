"""
Shared fixtures

The registry and every tenant store run on SQLite files inside tmp_path,
so each test gets fresh, isolated databases.
"""

import uuid

import pytest
import pytest_asyncio

from agentdesk.config import Settings
from agentdesk.database import RegistryDatabaseManager, TenantDatabaseRouter
from agentdesk.middleware import AuditLogger
from agentdesk.models.registry import TenantStatus, User, UserRole


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        registry_database_url=f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}",
        tenant_server_url=f"sqlite+aiosqlite:///{tmp_path / 'tenants'}",
        tenant_query_timeout=5.0,
        aggregation_concurrency=4,
        log_dir=str(tmp_path / "logs"),
    )


@pytest_asyncio.fixture
async def registry(test_settings):
    registry = RegistryDatabaseManager(test_settings)
    await registry.initialize()
    yield registry
    await registry.close()


@pytest_asyncio.fixture
async def router(test_settings, registry):
    router = TenantDatabaseRouter(test_settings, registry)
    yield router
    await router.close()


@pytest.fixture
def audit(registry) -> AuditLogger:
    return AuditLogger(registry)


@pytest.fixture
def make_user(registry):
    """Insert a registry user directly and return its id as a string"""

    async def _make(
        name: str = "Acme",
        role: str = UserRole.CLIENT.value,
        status: str = TenantStatus.ACTIVE.value,
    ) -> str:
        async with registry.session_scope() as session:
            user = User(
                name=name,
                email=f"{name.lower()}-{uuid.uuid4().hex[:8]}@example.com",
                password="not-a-real-hash",
                role=role,
                status=status,
            )
            session.add(user)
            await session.flush()
            return str(user.id)

    return _make


AGENT_INSERT = "INSERT INTO agents (name, ai_provider, model) VALUES (:name, :provider, :model)"


@pytest.fixture
def insert_agent():
    """Insert an agent row through the router with a raw statement"""

    async def _insert(router, tenant_id, name="Bot", provider="chatgpt", model="gpt-4"):
        return await router.route_execute(
            tenant_id, AGENT_INSERT, {"name": name, "provider": provider, "model": model}
        )

    return _insert
