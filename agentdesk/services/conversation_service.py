"""
Conversation Service
Tenant-scoped conversations, messages and WhatsApp sessions
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from loguru import logger

from agentdesk.database.tenant_connection import TenantDatabaseRouter, TenantId
from agentdesk.models.tenant import (
    Agent,
    Conversation,
    ConversationStatus,
    Message,
    MessageType,
    SessionStatus,
    WhatsAppSession,
)
from agentdesk.services.agent_service import AgentNotFoundError


# Statuses that end a conversation
FINAL_STATUSES = {ConversationStatus.RESOLVED.value, ConversationStatus.CLOSED.value}


class ConversationNotFoundError(Exception):
    """Raised when a conversation id does not exist in the tenant's store"""

    def __init__(self, conversation_id: int):
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id


async def create_conversation(
    router: TenantDatabaseRouter,
    tenant_id: TenantId,
    agent_id: Optional[int] = None,
    customer_name: Optional[str] = None,
    customer_email: Optional[str] = None,
    customer_phone: Optional[str] = None,
    channel_type: str = "whatsapp",
    priority: int = 1,
    tags: Optional[List[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Open a conversation in the tenant's store

    Raises:
        AgentNotFoundError: If agent_id is given but unknown to this tenant
    """
    async with router.session(tenant_id) as session:
        if agent_id is not None and await session.get(Agent, agent_id) is None:
            raise AgentNotFoundError(agent_id)

        conversation = Conversation(
            agent_id=agent_id,
            customer_name=customer_name,
            customer_email=customer_email,
            customer_phone=customer_phone,
            channel_type=channel_type,
            priority=priority,
            tags=tags,
            extra_metadata=metadata,
        )
        session.add(conversation)
        await session.flush()
        await session.refresh(conversation)
        result = conversation.to_dict()

    logger.info(f"Tenant {tenant_id}: opened conversation {result['id']} on {channel_type}")
    return result


async def get_conversation(router: TenantDatabaseRouter, tenant_id: TenantId, conversation_id: int) -> Dict[str, Any]:
    async with router.session(tenant_id) as session:
        conversation = await session.get(Conversation, conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation.to_dict()


async def list_conversations(
    router: TenantDatabaseRouter,
    tenant_id: TenantId,
    status: Optional[str] = None,
    agent_id: Optional[int] = None,
    channel_type: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    stmt = select(Conversation)
    if status:
        stmt = stmt.where(Conversation.status == status)
    if agent_id is not None:
        stmt = stmt.where(Conversation.agent_id == agent_id)
    if channel_type:
        stmt = stmt.where(Conversation.channel_type == channel_type)

    stmt = stmt.order_by(Conversation.created_at.desc(), Conversation.id.desc()).offset(offset).limit(limit)

    async with router.session(tenant_id) as session:
        result = await session.execute(stmt)
        return [c.to_dict() for c in result.scalars().all()]


async def update_conversation_status(
    router: TenantDatabaseRouter,
    tenant_id: TenantId,
    conversation_id: int,
    status: str,
    satisfaction_rating: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Change a conversation's status. Resolving or closing stamps end_time
    and resolution_time (seconds since start) the first time it happens.
    """
    async with router.session(tenant_id) as session:
        conversation = await session.get(Conversation, conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)

        conversation.status = status
        if satisfaction_rating is not None:
            conversation.satisfaction_rating = satisfaction_rating

        if status in FINAL_STATUSES and conversation.end_time is None:
            now = datetime.utcnow()
            conversation.end_time = now
            conversation.resolution_time = max(int((now - conversation.start_time).total_seconds()), 0)

        await session.flush()
        await session.refresh(conversation)
        return conversation.to_dict()


async def add_message(
    router: TenantDatabaseRouter,
    tenant_id: TenantId,
    conversation_id: int,
    content: str,
    sender: str,
    message_type: str = MessageType.TEXT.value,
    media_url: Optional[str] = None,
    whatsapp_message_id: Optional[str] = None,
    response_time: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Append a message to a conversation"""
    async with router.session(tenant_id) as session:
        conversation = await session.get(Conversation, conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)

        message = Message(
            conversation_id=conversation_id,
            content=content,
            sender=sender,
            message_type=message_type,
            media_url=media_url,
            whatsapp_message_id=whatsapp_message_id,
            response_time=response_time,
            extra_metadata=metadata,
        )
        session.add(message)
        conversation.updated_at = datetime.utcnow()
        await session.flush()
        await session.refresh(message)
        return message.to_dict()


async def list_messages(
    router: TenantDatabaseRouter,
    tenant_id: TenantId,
    conversation_id: int,
    limit: int = 100,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """Messages of a conversation in chronological order"""
    stmt = (
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.timestamp.asc(), Message.id.asc())
        .offset(offset)
        .limit(limit)
    )

    async with router.session(tenant_id) as session:
        if await session.get(Conversation, conversation_id) is None:
            raise ConversationNotFoundError(conversation_id)
        result = await session.execute(stmt)
        return [m.to_dict() for m in result.scalars().all()]


async def upsert_whatsapp_session(
    router: TenantDatabaseRouter,
    tenant_id: TenantId,
    phone_number: str,
    contact_name: Optional[str] = None,
    agent_id: Optional[int] = None,
) -> Dict[str, Any]:
    """Create or refresh the WhatsApp session for a contact"""
    async with router.session(tenant_id) as session:
        wa_session = await session.scalar(
            select(WhatsAppSession).where(WhatsAppSession.phone_number == phone_number)
        )

        if wa_session is None:
            wa_session = WhatsAppSession(phone_number=phone_number)
            session.add(wa_session)

        if contact_name:
            wa_session.contact_name = contact_name
        if agent_id is not None:
            wa_session.agent_id = agent_id
        wa_session.status = SessionStatus.ACTIVE.value
        wa_session.last_activity = datetime.utcnow()

        await session.flush()
        await session.refresh(wa_session)
        return wa_session.to_dict()
