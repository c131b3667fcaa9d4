"""
Conversation Schemas
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field

from agentdesk.models.tenant import ChannelType, ConversationStatus, MessageSender, MessageType


class ConversationCreate(BaseModel):
    agent_id: Optional[int] = None
    customer_name: Optional[str] = Field(None, max_length=255)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = Field(None, max_length=50)
    channel_type: ChannelType = ChannelType.WHATSAPP
    priority: int = Field(1, ge=1, le=5)
    tags: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None


class ConversationStatusUpdate(BaseModel):
    status: ConversationStatus
    satisfaction_rating: Optional[float] = Field(None, ge=0, le=5)


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1)
    sender: MessageSender
    message_type: MessageType = MessageType.TEXT
    media_url: Optional[str] = Field(None, max_length=500)
    whatsapp_message_id: Optional[str] = Field(None, max_length=255)
    response_time: Optional[int] = Field(None, ge=0)
    metadata: Optional[Dict[str, Any]] = None
