"""
Authentication Schemas
Pydantic models for login and registry users
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field

from agentdesk.models.registry import UserPlan, UserRole
from agentdesk.security.password import MIN_PASSWORD_LENGTH


class LoginRequest(BaseModel):
    """Request schema for user login"""
    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., min_length=1, description="User password")

    model_config = {
        "json_schema_extra": {
            "example": {"email": "owner@acme.com", "password": "SecurePass123"}
        }
    }


class LoginResponse(BaseModel):
    """Response schema for successful login"""
    access_token: str
    token_type: str = "bearer"
    user: Dict[str, Any]


class UserCreateRequest(BaseModel):
    """Request schema for creating a registry user (admin only)"""
    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)
    role: UserRole = UserRole.CLIENT
    plan: UserPlan = UserPlan.FREE
    company: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
