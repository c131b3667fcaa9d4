"""
Message Model
A single message inside a conversation
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    JSON, Column, DateTime, ForeignKey, Integer, String, Text,
    Enum as SAEnum, func
)

from agentdesk.models.tenant.base import TenantBase


class MessageSender(str, Enum):
    USER = "user"
    AGENT = "agent"


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    DOCUMENT = "document"
    VIDEO = "video"


class MessageStatus(str, Enum):
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


class Message(TenantBase):
    __tablename__ = "messages"

    conversation_id = Column(
        Integer,
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    content = Column(Text, nullable=False)
    sender = Column(SAEnum(*[s.value for s in MessageSender], name="message_sender"), nullable=False)
    message_type = Column(
        SAEnum(*[t.value for t in MessageType], name="message_type"),
        nullable=False,
        default=MessageType.TEXT.value,
        server_default=MessageType.TEXT.value,
    )
    media_url = Column(String(500), nullable=True)
    whatsapp_message_id = Column(String(255), nullable=True, index=True)
    status = Column(
        SAEnum(*[s.value for s in MessageStatus], name="message_status"),
        nullable=False,
        default=MessageStatus.SENT.value,
        server_default=MessageStatus.SENT.value,
    )
    # Milliseconds taken by the agent to answer
    response_time = Column(Integer, nullable=True)
    extra_metadata = Column("metadata", JSON, nullable=True)
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow, server_default=func.now())

    def to_dict(self, exclude: list = None) -> dict:
        data = super().to_dict(exclude)
        data["metadata"] = self.extra_metadata
        return data
