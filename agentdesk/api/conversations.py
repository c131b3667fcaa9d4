"""
Conversation API Routes
Conversations and messages of the caller's tenant store
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from agentdesk.api.deps import ClientDep, RouterDep
from agentdesk.models.tenant import ChannelType, ConversationStatus
from agentdesk.schemas.conversation import ConversationCreate, ConversationStatusUpdate, MessageCreate
from agentdesk.services import conversation_service
from agentdesk.services.agent_service import AgentNotFoundError
from agentdesk.services.conversation_service import ConversationNotFoundError


router = APIRouter()


@router.get("")
async def list_conversations(
    current_user: ClientDep,
    tenant_router: RouterDep,
    status_filter: Optional[ConversationStatus] = Query(None, alias="status"),
    agent_id: Optional[int] = Query(None),
    channel_type: Optional[ChannelType] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    conversations = await conversation_service.list_conversations(
        tenant_router,
        current_user.tenant_id,
        status=status_filter.value if status_filter else None,
        agent_id=agent_id,
        channel_type=channel_type.value if channel_type else None,
        limit=limit,
        offset=offset,
    )
    return {"conversations": conversations, "limit": limit, "offset": offset}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_conversation(request: ConversationCreate, current_user: ClientDep, tenant_router: RouterDep):
    try:
        return await conversation_service.create_conversation(
            tenant_router, current_user.tenant_id, **request.model_dump(mode="json")
        )
    except AgentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/{conversation_id}")
async def get_conversation(conversation_id: int, current_user: ClientDep, tenant_router: RouterDep):
    try:
        return await conversation_service.get_conversation(tenant_router, current_user.tenant_id, conversation_id)
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.patch("/{conversation_id}/status")
async def update_conversation_status(
    conversation_id: int,
    request: ConversationStatusUpdate,
    current_user: ClientDep,
    tenant_router: RouterDep,
):
    try:
        return await conversation_service.update_conversation_status(
            tenant_router,
            current_user.tenant_id,
            conversation_id,
            request.status.value,
            satisfaction_rating=request.satisfaction_rating,
        )
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{conversation_id}/messages")
async def list_messages(
    conversation_id: int,
    current_user: ClientDep,
    tenant_router: RouterDep,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    try:
        messages = await conversation_service.list_messages(
            tenant_router, current_user.tenant_id, conversation_id, limit=limit, offset=offset
        )
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"messages": messages, "limit": limit, "offset": offset}


@router.post("/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
async def add_message(
    conversation_id: int,
    request: MessageCreate,
    current_user: ClientDep,
    tenant_router: RouterDep,
):
    try:
        return await conversation_service.add_message(
            tenant_router, current_user.tenant_id, conversation_id, **request.model_dump(mode="json")
        )
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
