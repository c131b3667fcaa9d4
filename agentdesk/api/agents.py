"""
Agent API Routes
CRUD on the caller's agents, served from the caller's tenant store
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from agentdesk.api.deps import ClientDep, RouterDep
from agentdesk.models.tenant import AIProvider
from agentdesk.schemas.agent import AgentCreate, AgentUpdate
from agentdesk.services import agent_service
from agentdesk.services.agent_service import AgentNotFoundError


router = APIRouter()


@router.get("")
async def list_agents(
    current_user: ClientDep,
    tenant_router: RouterDep,
    is_active: Optional[bool] = Query(None, description="Filter by active flag"),
    ai_provider: Optional[AIProvider] = Query(None, description="Filter by AI provider"),
    search: Optional[str] = Query(None, description="Search in name and description"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    agents = await agent_service.list_agents(
        tenant_router,
        current_user.tenant_id,
        limit=limit,
        offset=offset,
        is_active=is_active,
        ai_provider=ai_provider.value if ai_provider else None,
        search=search,
    )
    return {"agents": agents, "limit": limit, "offset": offset}


@router.get("/stats")
async def get_agent_stats(current_user: ClientDep, tenant_router: RouterDep):
    return await agent_service.get_agent_stats(tenant_router, current_user.tenant_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_agent(request: AgentCreate, current_user: ClientDep, tenant_router: RouterDep):
    return await agent_service.create_agent(
        tenant_router, current_user.tenant_id, request.model_dump(mode="json")
    )


@router.get("/{agent_id}")
async def get_agent(agent_id: int, current_user: ClientDep, tenant_router: RouterDep):
    try:
        return await agent_service.get_agent(tenant_router, current_user.tenant_id, agent_id)
    except AgentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{agent_id}")
async def update_agent(agent_id: int, request: AgentUpdate, current_user: ClientDep, tenant_router: RouterDep):
    try:
        return await agent_service.update_agent(
            tenant_router,
            current_user.tenant_id,
            agent_id,
            request.model_dump(mode="json", exclude_unset=True),
        )
    except AgentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/{agent_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_agent(agent_id: int, current_user: ClientDep, tenant_router: RouterDep):
    try:
        await agent_service.delete_agent(tenant_router, current_user.tenant_id, agent_id)
    except AgentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
