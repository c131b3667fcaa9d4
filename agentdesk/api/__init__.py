"""
API Module
FastAPI routers for all endpoints
"""

from agentdesk.api.auth import router as auth_router
from agentdesk.api.agents import router as agents_router
from agentdesk.api.conversations import router as conversations_router
from agentdesk.api.admin import router as admin_router

__all__ = ["auth_router", "agents_router", "conversations_router", "admin_router"]
