"""
Conversation Model
A customer conversation handled by an agent
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    JSON, Column, DateTime, ForeignKey, Integer, Numeric, String,
    Enum as SAEnum, func
)

from agentdesk.models.tenant.base import TenantBase


class ChannelType(str, Enum):
    WHATSAPP = "whatsapp"
    TELEGRAM = "telegram"
    WEB = "web"
    API = "api"


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"
    PENDING = "pending"
    CLOSED = "closed"


class Conversation(TenantBase):
    __tablename__ = "conversations"

    agent_id = Column(
        Integer,
        ForeignKey("agents.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    customer_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True, index=True)
    channel_type = Column(
        SAEnum(*[c.value for c in ChannelType], name="conversation_channel"),
        nullable=False,
        default=ChannelType.WHATSAPP.value,
        server_default=ChannelType.WHATSAPP.value,
    )
    status = Column(
        SAEnum(*[s.value for s in ConversationStatus], name="conversation_status"),
        nullable=False,
        default=ConversationStatus.ACTIVE.value,
        server_default=ConversationStatus.ACTIVE.value,
        index=True,
    )
    priority = Column(Integer, nullable=False, default=1, server_default="1")
    satisfaction_rating = Column(Numeric(3, 2), nullable=True)
    start_time = Column(DateTime, nullable=False, default=datetime.utcnow, server_default=func.now())
    end_time = Column(DateTime, nullable=True)
    # Seconds between start_time and end_time
    resolution_time = Column(Integer, nullable=True)
    tags = Column(JSON, nullable=True)
    # Python attribute renamed: "metadata" is reserved on declarative classes
    extra_metadata = Column("metadata", JSON, nullable=True)

    def to_dict(self, exclude: list = None) -> dict:
        data = super().to_dict(exclude)
        data["metadata"] = self.extra_metadata
        return data
