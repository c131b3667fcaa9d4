"""
Agent Service
Tenant-scoped CRUD for AI agents
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select
from loguru import logger

from agentdesk.database.tenant_connection import TenantDatabaseRouter, TenantId
from agentdesk.models.tenant import Agent


UPDATABLE_FIELDS = {
    "name",
    "description",
    "objective",
    "personality",
    "ai_provider",
    "model",
    "system_prompt",
    "temperature",
    "max_tokens",
    "is_active",
}


class AgentNotFoundError(Exception):
    """Raised when an agent id does not exist in the tenant's store"""

    def __init__(self, agent_id: int):
        super().__init__(f"Agent {agent_id} not found")
        self.agent_id = agent_id


async def create_agent(router: TenantDatabaseRouter, tenant_id: TenantId, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create an agent in the tenant's store

    Args:
        router: Tenant database router
        tenant_id: Owning tenant
        data: Agent fields (name, ai_provider and model are required)

    Returns:
        The created agent as a dict
    """
    values = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS and v is not None}

    async with router.session(tenant_id) as session:
        agent = Agent(**values)
        session.add(agent)
        await session.flush()
        await session.refresh(agent)
        result = agent.to_dict()

    logger.info(f"Tenant {tenant_id}: created agent {result['id']} ({result['name']})")
    return result


async def get_agent(router: TenantDatabaseRouter, tenant_id: TenantId, agent_id: int) -> Dict[str, Any]:
    async with router.session(tenant_id) as session:
        agent = await session.get(Agent, agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent.to_dict()


async def list_agents(
    router: TenantDatabaseRouter,
    tenant_id: TenantId,
    limit: int = 50,
    offset: int = 0,
    is_active: Optional[bool] = None,
    ai_provider: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """List a tenant's agents, newest first"""
    stmt = select(Agent)
    if is_active is not None:
        stmt = stmt.where(Agent.is_active == is_active)
    if ai_provider:
        stmt = stmt.where(Agent.ai_provider == ai_provider)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(Agent.name.like(pattern), Agent.description.like(pattern)))

    stmt = stmt.order_by(Agent.created_at.desc(), Agent.id.desc()).offset(offset).limit(limit)

    async with router.session(tenant_id) as session:
        result = await session.execute(stmt)
        return [agent.to_dict() for agent in result.scalars().all()]


async def update_agent(
    router: TenantDatabaseRouter,
    tenant_id: TenantId,
    agent_id: int,
    data: Dict[str, Any],
) -> Dict[str, Any]:
    """Apply a partial update; unknown fields are ignored"""
    async with router.session(tenant_id) as session:
        agent = await session.get(Agent, agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)

        for key, value in data.items():
            if key in UPDATABLE_FIELDS:
                setattr(agent, key, value)

        await session.flush()
        await session.refresh(agent)
        return agent.to_dict()


async def delete_agent(router: TenantDatabaseRouter, tenant_id: TenantId, agent_id: int) -> None:
    """
    Delete an agent. Its conversations keep existing with agent_id NULL;
    its metrics are removed with it.
    """
    async with router.session(tenant_id) as session:
        agent = await session.get(Agent, agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        await session.delete(agent)

    logger.info(f"Tenant {tenant_id}: deleted agent {agent_id}")


async def get_agent_stats(router: TenantDatabaseRouter, tenant_id: TenantId) -> Dict[str, Any]:
    """Agent counts for one tenant"""
    rows = await router.route_query(
        tenant_id,
        "SELECT ai_provider, is_active, COUNT(*) AS count FROM agents GROUP BY ai_provider, is_active",
    )

    total = 0
    active = 0
    by_provider: Dict[str, int] = {}
    for row in rows:
        count = int(row["count"])
        total += count
        if row["is_active"]:
            active += count
        by_provider[row["ai_provider"]] = by_provider.get(row["ai_provider"], 0) + count

    return {"total": total, "active": active, "by_provider": by_provider}
