"""
Tests for tenant-scoped agent CRUD
"""

import pytest

from agentdesk.services import agent_service
from agentdesk.services.agent_service import AgentNotFoundError


def agent_data(**overrides):
    data = {"name": "Support Bot", "ai_provider": "chatgpt", "model": "gpt-4"}
    data.update(overrides)
    return data


class TestAgentCrud:
    """Test suite for agent_service"""

    @pytest.mark.asyncio
    async def test_create_applies_defaults(self, router):
        agent = await agent_service.create_agent(router, "1", agent_data(description="Answers FAQs"))

        assert agent["id"] == 1
        assert agent["personality"] == "professional"
        assert agent["temperature"] == pytest.approx(0.7)
        assert agent["max_tokens"] == 1000
        assert agent["is_active"] is True

    @pytest.mark.asyncio
    async def test_create_ignores_unknown_fields(self, router):
        agent = await agent_service.create_agent(router, "1", agent_data(id=99, owner="someone"))

        assert agent["id"] == 1
        assert "owner" not in agent

    @pytest.mark.asyncio
    async def test_get_and_not_found(self, router):
        created = await agent_service.create_agent(router, "1", agent_data())

        fetched = await agent_service.get_agent(router, "1", created["id"])
        assert fetched["name"] == "Support Bot"

        with pytest.raises(AgentNotFoundError):
            await agent_service.get_agent(router, "1", 404)

    @pytest.mark.asyncio
    async def test_agents_are_scoped_to_their_tenant(self, router):
        created = await agent_service.create_agent(router, "1", agent_data())

        with pytest.raises(AgentNotFoundError):
            await agent_service.get_agent(router, "2", created["id"])
        assert await agent_service.list_agents(router, "2") == []

    @pytest.mark.asyncio
    async def test_list_filters(self, router):
        await agent_service.create_agent(router, "1", agent_data(name="Sales helper"))
        await agent_service.create_agent(router, "1", agent_data(name="Billing", ai_provider="gemini", model="gemini-pro"))
        await agent_service.create_agent(router, "1", agent_data(name="Retired", is_active=False))

        assert len(await agent_service.list_agents(router, "1")) == 3

        gemini = await agent_service.list_agents(router, "1", ai_provider="gemini")
        assert [a["name"] for a in gemini] == ["Billing"]

        active = await agent_service.list_agents(router, "1", is_active=True)
        assert {a["name"] for a in active} == {"Sales helper", "Billing"}

        found = await agent_service.list_agents(router, "1", search="sales")
        assert [a["name"] for a in found] == ["Sales helper"]

        page = await agent_service.list_agents(router, "1", limit=2)
        assert len(page) == 2

    @pytest.mark.asyncio
    async def test_update_is_partial(self, router):
        created = await agent_service.create_agent(router, "1", agent_data())

        updated = await agent_service.update_agent(
            router, "1", created["id"], {"personality": "friendly", "is_active": False, "id": 50}
        )

        assert updated["id"] == created["id"]
        assert updated["personality"] == "friendly"
        assert updated["is_active"] is False
        assert updated["model"] == "gpt-4"

    @pytest.mark.asyncio
    async def test_update_missing_agent(self, router):
        with pytest.raises(AgentNotFoundError):
            await agent_service.update_agent(router, "1", 7, {"name": "x"})

    @pytest.mark.asyncio
    async def test_delete_keeps_conversations(self, router):
        created = await agent_service.create_agent(router, "1", agent_data())
        await router.route_execute(
            "1", "INSERT INTO conversations (agent_id, customer_name) VALUES (:agent_id, 'Jane')",
            {"agent_id": created["id"]},
        )

        await agent_service.delete_agent(router, "1", created["id"])

        assert await agent_service.list_agents(router, "1") == []
        rows = await router.route_query("1", "SELECT agent_id FROM conversations")
        assert rows == [{"agent_id": None}]

        with pytest.raises(AgentNotFoundError):
            await agent_service.delete_agent(router, "1", created["id"])

    @pytest.mark.asyncio
    async def test_stats(self, router):
        await agent_service.create_agent(router, "1", agent_data())
        await agent_service.create_agent(router, "1", agent_data(ai_provider="gemini", model="gemini-pro"))
        await agent_service.create_agent(router, "1", agent_data(is_active=False))

        stats = await agent_service.get_agent_stats(router, "1")

        assert stats == {"total": 3, "active": 2, "by_provider": {"chatgpt": 2, "gemini": 1}}
