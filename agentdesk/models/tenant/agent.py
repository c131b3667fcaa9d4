"""
Agent Model
An AI support agent configured by a tenant
"""

from enum import Enum

from sqlalchemy import Boolean, Column, Integer, Numeric, String, Text, Enum as SAEnum, true

from agentdesk.models.tenant.base import TenantBase


class AgentPersonality(str, Enum):
    FORMAL = "formal"
    CASUAL = "casual"
    FRIENDLY = "friendly"
    PROFESSIONAL = "professional"


class AIProvider(str, Enum):
    CHATGPT = "chatgpt"
    GEMINI = "gemini"
    HUGGINGFACE = "huggingface"


class Agent(TenantBase):
    __tablename__ = "agents"

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    objective = Column(Text, nullable=True)
    personality = Column(
        SAEnum(*[p.value for p in AgentPersonality], name="agent_personality"),
        nullable=False,
        default=AgentPersonality.PROFESSIONAL.value,
        server_default=AgentPersonality.PROFESSIONAL.value,
    )
    ai_provider = Column(
        SAEnum(*[p.value for p in AIProvider], name="agent_ai_provider"),
        nullable=False,
    )
    model = Column(String(100), nullable=False)
    system_prompt = Column(Text, nullable=True)
    temperature = Column(Numeric(3, 2), nullable=False, default=0.7, server_default="0.70")
    max_tokens = Column(Integer, nullable=False, default=1000, server_default="1000")
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
