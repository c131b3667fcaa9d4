"""
Services Package
Business logic on top of the registry and the tenant database router
"""

from agentdesk.services.admin_service import AdminService
from agentdesk.services.agent_service import AgentNotFoundError
from agentdesk.services.conversation_service import ConversationNotFoundError
from agentdesk.services.tenant_service import (
    TenantServiceError,
    UserNotFoundError,
    DuplicateEmailError,
    AuthenticationError,
)

__all__ = [
    "AdminService",
    "AgentNotFoundError",
    "ConversationNotFoundError",
    "TenantServiceError",
    "UserNotFoundError",
    "DuplicateEmailError",
    "AuthenticationError",
]
