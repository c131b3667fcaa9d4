"""
Pydantic Schemas Module
Request and response models for API endpoints
"""

from agentdesk.schemas.auth import LoginRequest, LoginResponse, UserCreateRequest
from agentdesk.schemas.agent import AgentCreate, AgentUpdate
from agentdesk.schemas.conversation import ConversationCreate, ConversationStatusUpdate, MessageCreate

__all__ = [
    "LoginRequest",
    "LoginResponse",
    "UserCreateRequest",
    "AgentCreate",
    "AgentUpdate",
    "ConversationCreate",
    "ConversationStatusUpdate",
    "MessageCreate",
]
