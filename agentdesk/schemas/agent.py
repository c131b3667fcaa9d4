"""
Agent Schemas
"""

from typing import Optional

from pydantic import BaseModel, Field

from agentdesk.models.tenant import AgentPersonality, AIProvider


class AgentCreate(BaseModel):
    """Request schema for creating an agent"""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    objective: Optional[str] = None
    personality: AgentPersonality = AgentPersonality.PROFESSIONAL
    ai_provider: AIProvider
    model: str = Field(..., min_length=1, max_length=100)
    system_prompt: Optional[str] = None
    temperature: float = Field(0.7, ge=0, le=2)
    max_tokens: int = Field(1000, ge=1, le=32000)
    is_active: bool = True

    model_config = {
        "protected_namespaces": (),
        "json_schema_extra": {
            "example": {
                "name": "Support Bot",
                "ai_provider": "chatgpt",
                "model": "gpt-4",
                "personality": "friendly",
            }
        },
    }


class AgentUpdate(BaseModel):
    """Partial update; only fields that are sent are applied"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    objective: Optional[str] = None
    personality: Optional[AgentPersonality] = None
    ai_provider: Optional[AIProvider] = None
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    system_prompt: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0, le=2)
    max_tokens: Optional[int] = Field(None, ge=1, le=32000)
    is_active: Optional[bool] = None

    model_config = {"protected_namespaces": ()}
