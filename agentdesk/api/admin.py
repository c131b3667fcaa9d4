"""
Admin API Router

Endpoints for the admin dashboard: system statistics, cross-tenant
listings, tenant user lifecycle and tenant store management.

Security: Protected by admin API key authentication.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from loguru import logger

from agentdesk.api.deps import AdminServiceDep, AuditDep, RegistryDep, RouterDep, verify_admin_api_key
from agentdesk.models.registry import TenantStatus, UserRole
from agentdesk.models.tenant import AIProvider, ChannelType, ConversationStatus
from agentdesk.schemas.auth import UserCreateRequest
from agentdesk.services import tenant_service
from agentdesk.services.tenant_service import DuplicateEmailError, TenantServiceError, UserNotFoundError


router = APIRouter(dependencies=[Depends(verify_admin_api_key)])


# ==================== Response Models ====================

class ProvisionResponse(BaseModel):
    """Response model for a provisioned tenant store"""
    tenant_id: str
    store_name: str
    created_at: str


class CleanupResponse(BaseModel):
    evicted: list
    count: int


# ==================== Dashboard ====================

@router.get("/health")
async def admin_health_check():
    """
    Health check endpoint for admin API.
    """
    return {
        "status": "healthy",
        "service": "AgentDesk Admin API",
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/dashboard")
async def get_dashboard(service: AdminServiceDep):
    """
    System-wide statistics.

    Tenants whose store could not be reached are listed under
    ``skipped_tenants`` instead of failing the request.
    """
    return await service.get_dashboard_stats()


@router.get("/agents")
async def get_all_agents(
    service: AdminServiceDep,
    is_active: Optional[bool] = Query(None, description="Filter by active flag"),
    ai_provider: Optional[AIProvider] = Query(None, description="Filter by AI provider"),
    search: Optional[str] = Query(None, description="Search in name and description"),
    limit: int = Query(50, ge=1, le=200, description="Number of records to return"),
    offset: int = Query(0, ge=0, description="Pagination offset"),
):
    """Agents of every active tenant, newest first"""
    return await service.get_all_agents(
        is_active=is_active,
        ai_provider=ai_provider.value if ai_provider else None,
        search=search,
        limit=limit,
        offset=offset,
    )


@router.get("/conversations")
async def get_all_conversations(
    service: AdminServiceDep,
    status_filter: Optional[ConversationStatus] = Query(None, alias="status"),
    channel_type: Optional[ChannelType] = Query(None),
    limit: int = Query(50, ge=1, le=200, description="Number of records to return"),
    offset: int = Query(0, ge=0, description="Pagination offset"),
):
    """Conversations of every active tenant, newest first"""
    return await service.get_all_conversations(
        status=status_filter.value if status_filter else None,
        channel_type=channel_type.value if channel_type else None,
        limit=limit,
        offset=offset,
    )


# ==================== Users ====================

@router.get("/users")
async def list_users(
    registry: RegistryDep,
    role: Optional[UserRole] = Query(None),
    status_filter: Optional[TenantStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    users, total = await tenant_service.list_users(
        registry,
        role=role.value if role else None,
        status=status_filter.value if status_filter else None,
        limit=limit,
        offset=offset,
    )
    return {
        "users": users,
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + len(users) < total,
    }


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(
    request: UserCreateRequest,
    registry: RegistryDep,
    tenant_router: RouterDep,
    audit: AuditDep,
):
    """
    Create a user. A client gets its tenant store provisioned right away;
    if that fails the user is kept in ``provisioning`` and 503 is returned.
    """
    try:
        return await tenant_service.create_tenant_user(
            registry,
            tenant_router,
            audit,
            name=request.name,
            email=request.email,
            password=request.password,
            role=request.role.value,
            plan=request.plan.value,
            company=request.company,
            phone=request.phone,
        )
    except DuplicateEmailError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except TenantServiceError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/users/{user_id}")
async def get_user(user_id: int, registry: RegistryDep):
    try:
        return await tenant_service.get_user(registry, user_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    registry: RegistryDep,
    tenant_router: RouterDep,
    audit: AuditDep,
    drop_store: Optional[bool] = Query(None, description="Drop the tenant store (default from settings)"),
):
    """Delete a user. If the store cannot be dropped the user is kept and 503 is returned."""
    try:
        await tenant_service.delete_tenant_user(registry, tenant_router, audit, user_id, drop_store=drop_store)
    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/users/{user_id}/suspend")
async def suspend_user(user_id: int, registry: RegistryDep, tenant_router: RouterDep, audit: AuditDep):
    try:
        return await tenant_service.suspend_tenant(registry, tenant_router, audit, user_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/users/{user_id}/activate")
async def activate_user(user_id: int, registry: RegistryDep, audit: AuditDep):
    try:
        return await tenant_service.activate_tenant(registry, audit, user_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# ==================== Tenant stores ====================

@router.get("/stores")
async def get_stores(service: AdminServiceDep):
    """Tenant stores with their cache and pool state"""
    return await service.get_store_overview()


@router.post("/stores/{tenant_id}/provision", response_model=ProvisionResponse)
async def provision_store(tenant_id: int, registry: RegistryDep, tenant_router: RouterDep, audit: AuditDep):
    """
    Provision (or re-check) a client's store. Retrying after a failed
    provisioning is safe.
    """
    try:
        handle = await tenant_service.provision_tenant(registry, tenant_router, audit, tenant_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except TenantServiceError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(f"[ADMIN_API] Store ready for tenant {tenant_id}: {handle.store_name}")
    return ProvisionResponse(
        tenant_id=handle.tenant_id,
        store_name=handle.store_name,
        created_at=handle.created_at.isoformat(),
    )


@router.post("/stores/cleanup", response_model=CleanupResponse)
async def cleanup_stores(
    service: AdminServiceDep,
    max_idle_seconds: Optional[int] = Query(None, ge=1, description="Idle threshold (default from settings)"),
):
    """Close pools of tenants idle for longer than the threshold"""
    evicted = await service.cleanup_idle_stores(max_idle_seconds)
    return CleanupResponse(evicted=evicted, count=len(evicted))
