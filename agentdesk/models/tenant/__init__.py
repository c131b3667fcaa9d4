"""
Tenant Models Package
Tables bootstrapped idempotently inside every tenant store
"""

from agentdesk.models.tenant.base import TenantBase
from agentdesk.models.tenant.agent import Agent, AgentPersonality, AIProvider
from agentdesk.models.tenant.conversation import Conversation, ConversationStatus, ChannelType
from agentdesk.models.tenant.message import Message, MessageSender, MessageType, MessageStatus
from agentdesk.models.tenant.whatsapp_session import WhatsAppSession, SessionStatus
from agentdesk.models.tenant.agent_metric import AgentMetric

# Bootstrap order: parents before children
TENANT_TABLES = [
    Agent.__table__,
    Conversation.__table__,
    Message.__table__,
    WhatsAppSession.__table__,
    AgentMetric.__table__,
]

__all__ = [
    "TenantBase",
    "TENANT_TABLES",
    "Agent",
    "AgentPersonality",
    "AIProvider",
    "Conversation",
    "ConversationStatus",
    "ChannelType",
    "Message",
    "MessageSender",
    "MessageType",
    "MessageStatus",
    "WhatsAppSession",
    "SessionStatus",
    "AgentMetric",
]
