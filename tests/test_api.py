"""
API tests over ASGI
The app state is wired to the per-test registry and router
"""

from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from agentdesk.config import settings
from agentdesk.database import QueryTimeoutError
from agentdesk.main import create_app
from agentdesk.services.admin_service import AdminService


ADMIN_HEADERS = {"X-Admin-API-Key": settings.admin_api_key}


@pytest_asyncio.fixture
async def client(registry, router, audit):
    app = create_app()
    app.state.registry = registry
    app.state.tenant_router = router
    app.state.audit = audit
    app.state.admin_service = AdminService(router, registry, audit)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http


async def register_client(client, email="owner@acme.com", password="secret123", name="Acme Owner"):
    response = await client.post(
        "/api/admin/users",
        json={"name": name, "email": email, "password": password},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def login(client, email="owner@acme.com", password="secret123"):
    response = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["registry_connected"] is True


class TestAuth:
    """Test suite for /api/auth"""

    @pytest.mark.asyncio
    async def test_login_and_me(self, client):
        user = await register_client(client)
        headers = await login(client)

        response = await client.get("/api/auth/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["id"] == user["id"]

    @pytest.mark.asyncio
    async def test_bad_credentials(self, client):
        await register_client(client)

        response = await client.post("/api/auth/login", json={"email": "owner@acme.com", "password": "nope"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.get("/api/agents", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/agents")
        assert response.status_code in (401, 403)


class TestTenantRoutes:
    """Test suite for /api/agents and /api/conversations"""

    @pytest.mark.asyncio
    async def test_agent_and_conversation_flow(self, client):
        await register_client(client)
        headers = await login(client)

        response = await client.post(
            "/api/agents",
            json={"name": "Support Bot", "ai_provider": "chatgpt", "model": "gpt-4", "temperature": 0.3},
            headers=headers,
        )
        assert response.status_code == 201, response.text
        agent = response.json()
        assert agent["temperature"] == pytest.approx(0.3)

        response = await client.put(f"/api/agents/{agent['id']}", json={"personality": "casual"}, headers=headers)
        assert response.json()["personality"] == "casual"
        assert response.json()["model"] == "gpt-4"

        response = await client.post(
            "/api/conversations",
            json={"agent_id": agent["id"], "customer_name": "Jane", "channel_type": "web"},
            headers=headers,
        )
        assert response.status_code == 201
        conversation = response.json()

        response = await client.post(
            f"/api/conversations/{conversation['id']}/messages",
            json={"content": "Hello", "sender": "user"},
            headers=headers,
        )
        assert response.status_code == 201

        response = await client.get(f"/api/conversations/{conversation['id']}/messages", headers=headers)
        assert [m["content"] for m in response.json()["messages"]] == ["Hello"]

        response = await client.patch(
            f"/api/conversations/{conversation['id']}/status",
            json={"status": "resolved", "satisfaction_rating": 5},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["end_time"] is not None

        response = await client.get("/api/agents/stats", headers=headers)
        assert response.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_tenants_do_not_see_each_other(self, client):
        await register_client(client, email="a@acme.com")
        await register_client(client, email="b@globex.com", name="Globex Owner")
        headers_a = await login(client, email="a@acme.com")
        headers_b = await login(client, email="b@globex.com")

        created = await client.post(
            "/api/agents", json={"name": "A bot", "ai_provider": "gemini", "model": "gemini-pro"}, headers=headers_a
        )
        agent_id = created.json()["id"]

        assert (await client.get("/api/agents", headers=headers_b)).json()["agents"] == []
        assert (await client.get(f"/api/agents/{agent_id}", headers=headers_b)).status_code == 404
        assert (await client.get(f"/api/agents/{agent_id}", headers=headers_a)).status_code == 200

    @pytest.mark.asyncio
    async def test_conversation_with_unknown_agent(self, client):
        await register_client(client)
        headers = await login(client)

        response = await client.post("/api/conversations", json={"agent_id": 99}, headers=headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_validation_error(self, client):
        await register_client(client)
        headers = await login(client)

        response = await client.post(
            "/api/agents", json={"name": "Bot", "ai_provider": "skynet", "model": "t-800"}, headers=headers
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_admins_have_no_tenant_store(self, client):
        response = await client.post(
            "/api/admin/users",
            json={"name": "Root", "email": "root@agentdesk.io", "password": "secret123", "role": "admin"},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 201
        headers = await login(client, email="root@agentdesk.io")

        response = await client.get("/api/agents", headers=headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_query_timeout_maps_to_504(self, client, router):
        await register_client(client)
        headers = await login(client)

        with patch.object(router, "_run", side_effect=QueryTimeoutError("1", 0.05)):
            response = await client.get("/api/agents/stats", headers=headers)

        assert response.status_code == 504
        assert response.json()["tenant_id"] == "1"


class TestAdminRoutes:
    """Test suite for /api/admin"""

    @pytest.mark.asyncio
    async def test_requires_api_key(self, client):
        assert (await client.get("/api/admin/dashboard")).status_code == 401
        response = await client.get("/api/admin/dashboard", headers={"X-Admin-API-Key": "wrong"})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_dashboard_and_listings(self, client):
        await register_client(client)
        headers = await login(client)
        await client.post("/api/agents", json={"name": "Bot", "ai_provider": "chatgpt", "model": "gpt-4"}, headers=headers)

        dashboard = (await client.get("/api/admin/dashboard", headers=ADMIN_HEADERS)).json()
        assert dashboard["agents"]["total"] == 1
        assert dashboard["users"]["clients"] == 1

        agents = (await client.get("/api/admin/agents", headers=ADMIN_HEADERS)).json()
        assert agents["agents"][0]["owner_name"] == "Acme Owner"

        conversations = (await client.get("/api/admin/conversations", headers=ADMIN_HEADERS)).json()
        assert conversations["total"] == 0

        users = (await client.get("/api/admin/users?role=client", headers=ADMIN_HEADERS)).json()
        assert users["total"] == 1

        stores = (await client.get("/api/admin/stores", headers=ADMIN_HEADERS)).json()
        assert stores["tenants"][0]["cached"] is True

    @pytest.mark.asyncio
    async def test_duplicate_user(self, client):
        await register_client(client)

        response = await client.post(
            "/api/admin/users",
            json={"name": "Again", "email": "owner@acme.com", "password": "secret123"},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_suspend_blocks_access_and_activate_restores(self, client):
        user = await register_client(client)
        headers = await login(client)

        response = await client.post(f"/api/admin/users/{user['id']}/suspend", headers=ADMIN_HEADERS)
        assert response.json()["status"] == "suspended"
        assert (await client.get("/api/agents", headers=headers)).status_code == 401

        await client.post(f"/api/admin/users/{user['id']}/activate", headers=ADMIN_HEADERS)
        assert (await client.get("/api/agents", headers=headers)).status_code == 200

    @pytest.mark.asyncio
    async def test_provisioning_failure_maps_to_503_and_retry_works(self, client, router):
        with patch.object(router.dialect, "create_store", side_effect=OSError("server down")):
            response = await client.post(
                "/api/admin/users",
                json={"name": "Late", "email": "late@acme.com", "password": "secret123"},
                headers=ADMIN_HEADERS,
            )
        assert response.status_code == 503

        users = (await client.get("/api/admin/users", headers=ADMIN_HEADERS)).json()["users"]
        assert users[0]["status"] == "provisioning"

        response = await client.post(f"/api/admin/stores/{users[0]['id']}/provision", headers=ADMIN_HEADERS)
        assert response.status_code == 200
        assert response.json()["store_name"] == f"tenant_store_{users[0]['id']}"

    @pytest.mark.asyncio
    async def test_delete_user(self, client, router):
        user = await register_client(client)

        response = await client.delete(f"/api/admin/users/{user['id']}?drop_store=true", headers=ADMIN_HEADERS)
        assert response.status_code == 204
        assert not router.is_cached(user["id"])

        response = await client.delete(f"/api/admin/users/{user['id']}", headers=ADMIN_HEADERS)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_cleanup_endpoint(self, client):
        await register_client(client)

        response = await client.post("/api/admin/stores/cleanup?max_idle_seconds=3600", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        assert response.json() == {"evicted": [], "count": 0}
