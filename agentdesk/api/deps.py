"""
API Dependencies
FastAPI dependencies for authentication, authorization and shared services
"""

from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger

from agentdesk.config import settings
from agentdesk.database.registry_connection import RegistryDatabaseManager
from agentdesk.database.tenant_connection import TenantDatabaseRouter
from agentdesk.middleware.audit_logger import AuditLogger
from agentdesk.models.registry import TenantStatus, UserRole
from agentdesk.security.jwt_handler import TokenPayload, verify_token
from agentdesk.services.admin_service import AdminService
from agentdesk.services.tenant_service import UserNotFoundError, get_user


# HTTP Bearer token scheme
security = HTTPBearer(
    scheme_name="JWT",
    description="Enter your JWT access token",
    auto_error=True
)


# =============================================================================
# Shared objects created during application startup
# =============================================================================

def get_registry(request: Request) -> RegistryDatabaseManager:
    return request.app.state.registry


def get_router(request: Request) -> TenantDatabaseRouter:
    return request.app.state.tenant_router


def get_audit(request: Request) -> AuditLogger:
    return request.app.state.audit


def get_admin_service(request: Request) -> AdminService:
    return request.app.state.admin_service


RegistryDep = Annotated[RegistryDatabaseManager, Depends(get_registry)]
RouterDep = Annotated[TenantDatabaseRouter, Depends(get_router)]
AuditDep = Annotated[AuditLogger, Depends(get_audit)]
AdminServiceDep = Annotated[AdminService, Depends(get_admin_service)]


# =============================================================================
# Authentication
# =============================================================================

class CurrentUser:
    """Container for authenticated user context"""

    def __init__(self, user: dict, token_payload: TokenPayload):
        self.user = user
        self.token_payload = token_payload

    @property
    def user_id(self) -> int:
        return self.user["id"]

    @property
    def tenant_id(self) -> str:
        """A client's tenant id is its registry user id"""
        return str(self.user["id"])

    @property
    def email(self) -> str:
        return self.user["email"]

    @property
    def role(self) -> str:
        return self.user["role"]


async def get_current_user(
    registry: RegistryDep,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """
    Validate JWT token and return current user context.

    Usage:
        @router.get("/protected")
        async def protected_route(current_user: CurrentUserDep):
            return {"user": current_user.email}
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = verify_token(credentials.credentials)
        user_id = payload.user_id
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError:
        raise credentials_exception
    except ValueError as e:
        logger.warning(f"Invalid subject in token: {str(e)}")
        raise credentials_exception

    try:
        user = await get_user(registry, user_id)
    except UserNotFoundError:
        logger.warning(f"User not found for token: {user_id}")
        raise credentials_exception

    if not user["is_active"] or user["status"] == TenantStatus.SUSPENDED.value:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is deactivated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return CurrentUser(user=user, token_payload=payload)


async def require_client(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Only client users own a tenant store"""
    if current_user.role != UserRole.CLIENT.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Required role: client"
        )
    if current_user.user["status"] != TenantStatus.ACTIVE.value:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Tenant store is not ready yet"
        )
    return current_user


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
ClientDep = Annotated[CurrentUser, Depends(require_client)]


# =============================================================================
# Admin API key
# =============================================================================

async def verify_admin_api_key(x_admin_api_key: str = Header(None, alias="X-Admin-API-Key")) -> bool:
    """
    Verify the admin API key for authentication.
    """
    if not x_admin_api_key:
        raise HTTPException(
            status_code=401,
            detail="Missing X-Admin-API-Key header"
        )

    if x_admin_api_key != settings.admin_api_key:
        raise HTTPException(
            status_code=403,
            detail="Invalid admin API key"
        )

    return True
