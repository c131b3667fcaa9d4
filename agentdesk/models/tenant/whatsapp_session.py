"""
WhatsApp Session Model
Tracks which agent is serving a WhatsApp contact
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Enum as SAEnum, func

from agentdesk.models.tenant.base import TenantBase


class SessionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ENDED = "ended"


class WhatsAppSession(TenantBase):
    __tablename__ = "whatsapp_sessions"

    phone_number = Column(String(50), nullable=False, unique=True)
    contact_name = Column(String(255), nullable=True)
    agent_id = Column(Integer, ForeignKey("agents.id", ondelete="SET NULL"), nullable=True)
    status = Column(
        SAEnum(*[s.value for s in SessionStatus], name="whatsapp_session_status"),
        nullable=False,
        default=SessionStatus.ACTIVE.value,
        server_default=SessionStatus.ACTIVE.value,
    )
    last_activity = Column(DateTime, nullable=False, default=datetime.utcnow, server_default=func.now())
    extra_metadata = Column("metadata", JSON, nullable=True)

    def to_dict(self, exclude: list = None) -> dict:
        data = super().to_dict(exclude)
        data["metadata"] = self.extra_metadata
        return data
