"""
JWT Handler Module
Manages JSON Web Token creation and verification
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

import jwt
from pydantic import BaseModel, Field
from loguru import logger

from agentdesk.config import settings


class TokenPayload(BaseModel):
    """JWT Token Payload Schema"""
    sub: str = Field(..., description="Subject (registry user id, also the tenant id for clients)")
    email: Optional[str] = Field(None, description="User email")
    role: str = Field(..., description="User role (admin/client)")
    exp: Optional[datetime] = Field(None, description="Expiration time")
    iat: Optional[datetime] = Field(None, description="Issued at time")
    jti: Optional[str] = Field(None, description="JWT ID (unique identifier)")

    @property
    def user_id(self) -> int:
        return int(self.sub)


def create_access_token(
    user_id: int,
    email: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[Dict[str, Any]] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        user_id: Registry user id
        email: User's email
        role: User's role
        expires_delta: Custom expiration time (default: from settings)
        additional_claims: Extra claims to include in token

    Returns:
        JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_access_token_expire_minutes)

    now = datetime.now(timezone.utc)

    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "iat": now,
        "exp": now + expires_delta,
        "jti": str(uuid.uuid4())
    }

    if additional_claims:
        payload.update(additional_claims)

    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> TokenPayload:
    """
    Verify and decode a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If token is expired
        jwt.InvalidTokenError: If token is invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Token has expired")
        raise
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid token: {str(e)}")
        raise

    return TokenPayload(**payload)
