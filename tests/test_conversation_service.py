"""
Tests for tenant-scoped conversations, messages and WhatsApp sessions
"""

import pytest

from agentdesk.services import agent_service, conversation_service
from agentdesk.services.agent_service import AgentNotFoundError
from agentdesk.services.conversation_service import ConversationNotFoundError


@pytest.fixture
def tenant_agent(router):
    async def _create(tenant_id="1"):
        return await agent_service.create_agent(
            router, tenant_id, {"name": "Support Bot", "ai_provider": "chatgpt", "model": "gpt-4"}
        )
    return _create


class TestConversations:
    """Test suite for conversation CRUD"""

    @pytest.mark.asyncio
    async def test_create_with_agent(self, router, tenant_agent):
        agent = await tenant_agent()

        conversation = await conversation_service.create_conversation(
            router, "1",
            agent_id=agent["id"],
            customer_name="Jane",
            customer_phone="+15550100",
            tags=["vip"],
            metadata={"source": "ad"},
        )

        assert conversation["agent_id"] == agent["id"]
        assert conversation["status"] == "active"
        assert conversation["channel_type"] == "whatsapp"
        assert conversation["tags"] == ["vip"]
        assert conversation["metadata"] == {"source": "ad"}
        assert conversation["start_time"] is not None

    @pytest.mark.asyncio
    async def test_create_rejects_foreign_agent(self, router, tenant_agent):
        agent = await tenant_agent("1")

        with pytest.raises(AgentNotFoundError):
            await conversation_service.create_conversation(router, "2", agent_id=agent["id"])

    @pytest.mark.asyncio
    async def test_list_filters(self, router, tenant_agent):
        agent = await tenant_agent()
        await conversation_service.create_conversation(router, "1", agent_id=agent["id"], channel_type="web")
        second = await conversation_service.create_conversation(router, "1", channel_type="telegram")
        await conversation_service.update_conversation_status(router, "1", second["id"], "pending")

        assert len(await conversation_service.list_conversations(router, "1")) == 2

        pending = await conversation_service.list_conversations(router, "1", status="pending")
        assert [c["id"] for c in pending] == [second["id"]]

        web = await conversation_service.list_conversations(router, "1", channel_type="web")
        assert len(web) == 1

        by_agent = await conversation_service.list_conversations(router, "1", agent_id=agent["id"])
        assert len(by_agent) == 1

    @pytest.mark.asyncio
    async def test_resolving_stamps_end_time_once(self, router):
        conversation = await conversation_service.create_conversation(router, "1", customer_name="Jane")

        resolved = await conversation_service.update_conversation_status(
            router, "1", conversation["id"], "resolved", satisfaction_rating=4.5
        )

        assert resolved["status"] == "resolved"
        assert resolved["end_time"] is not None
        assert resolved["resolution_time"] >= 0
        assert resolved["satisfaction_rating"] == pytest.approx(4.5)

        closed = await conversation_service.update_conversation_status(router, "1", conversation["id"], "closed")
        assert closed["end_time"] == resolved["end_time"]

    @pytest.mark.asyncio
    async def test_missing_conversation(self, router):
        with pytest.raises(ConversationNotFoundError):
            await conversation_service.get_conversation(router, "1", 1)
        with pytest.raises(ConversationNotFoundError):
            await conversation_service.update_conversation_status(router, "1", 1, "closed")


class TestMessages:
    """Test suite for messages"""

    @pytest.mark.asyncio
    async def test_messages_in_order(self, router):
        conversation = await conversation_service.create_conversation(router, "1")

        await conversation_service.add_message(router, "1", conversation["id"], "Hello", "user")
        await conversation_service.add_message(
            router, "1", conversation["id"], "Hi! How can I help?", "agent", response_time=850
        )

        messages = await conversation_service.list_messages(router, "1", conversation["id"])

        assert [m["content"] for m in messages] == ["Hello", "Hi! How can I help?"]
        assert messages[1]["response_time"] == 850
        assert messages[0]["message_type"] == "text"
        assert messages[0]["status"] == "sent"

    @pytest.mark.asyncio
    async def test_message_needs_conversation(self, router):
        with pytest.raises(ConversationNotFoundError):
            await conversation_service.add_message(router, "1", 5, "Hello", "user")
        with pytest.raises(ConversationNotFoundError):
            await conversation_service.list_messages(router, "1", 5)


class TestWhatsAppSessions:
    """Test suite for upsert_whatsapp_session"""

    @pytest.mark.asyncio
    async def test_upsert_creates_then_updates(self, router, tenant_agent):
        agent = await tenant_agent()

        created = await conversation_service.upsert_whatsapp_session(router, "1", "+15550100", contact_name="Jane")
        updated = await conversation_service.upsert_whatsapp_session(
            router, "1", "+15550100", agent_id=agent["id"]
        )

        assert updated["id"] == created["id"]
        assert updated["contact_name"] == "Jane"
        assert updated["agent_id"] == agent["id"]
        assert updated["status"] == "active"

        rows = await router.route_query("1", "SELECT COUNT(*) AS total FROM whatsapp_sessions")
        assert rows[0]["total"] == 1
