"""
Admin Service

Provides system-wide data for the admin dashboard. Registry totals come
from the shared registry; agent and conversation data is fanned out to
every active tenant store and merged in memory.

Tenants whose store cannot be reached are skipped, logged and reported
in the response under ``skipped_tenants``.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from loguru import logger

from agentdesk.database.registry_connection import RegistryDatabaseManager
from agentdesk.database.tenant_connection import TenantDatabaseRouter
from agentdesk.middleware.audit_logger import AuditLogger
from agentdesk.models.registry import TenantStatus, UserRole


def _plain(value: Any) -> Any:
    """Make raw driver values JSON friendly"""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def _plain_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {key: _plain(value) for key, value in row.items()}


def _paginate(rows: List[Dict[str, Any]], limit: int, offset: int) -> Dict[str, Any]:
    page = rows[offset:offset + limit]
    return {
        "items": page,
        "total": len(rows),
        "limit": limit,
        "offset": offset,
        "has_more": offset + len(page) < len(rows),
    }


class AdminService:
    """
    Service for admin dashboard data aggregation.

    Provides:
    - Registry and cross-tenant totals
    - All agents across all tenants
    - All conversations across all tenants
    - Tenant store overview and idle pool cleanup
    """

    def __init__(
        self,
        router: TenantDatabaseRouter,
        registry: RegistryDatabaseManager,
        audit: Optional[AuditLogger] = None,
    ):
        self.router = router
        self.registry = registry
        self.audit = audit or AuditLogger(registry)

    async def _tenant_ids(self) -> List[str]:
        return await self.registry.list_tenant_ids(status=TenantStatus.ACTIVE.value)

    async def _owners(self) -> Dict[str, Dict[str, Any]]:
        rows = await self.router.route_main_query(
            "SELECT id, name, email, company FROM users WHERE role = :role",
            {"role": UserRole.CLIENT.value},
        )
        return {str(row["id"]): row for row in rows}

    # ==================== Dashboard ====================

    async def get_dashboard_stats(self) -> Dict[str, Any]:
        """
        Get system-wide statistics.

        Returns:
            Dict with registry totals, agent/conversation/message totals
            summed over every reachable tenant, and skipped tenants
        """
        users: Dict[str, Any] = {"total": 0, "admins": 0, "clients": 0, "by_status": {}}
        for row in await self.router.route_main_query(
            "SELECT role, status, COUNT(*) AS count FROM users GROUP BY role, status"
        ):
            count = int(row["count"])
            users["total"] += count
            if row["role"] == UserRole.ADMIN.value:
                users["admins"] += count
            else:
                users["clients"] += count
                users["by_status"][row["status"]] = users["by_status"].get(row["status"], 0) + count

        plans = {
            row["plan"]: int(row["count"])
            for row in await self.router.route_main_query(
                "SELECT plan, COUNT(*) AS count FROM users WHERE role = :role GROUP BY plan",
                {"role": UserRole.CLIENT.value},
            )
        }

        alerts = {
            row["severity"]: int(row["count"])
            for row in await self.router.route_main_query(
                "SELECT severity, COUNT(*) AS count FROM alerts WHERE resolved = :resolved GROUP BY severity",
                {"resolved": False},
            )
        }

        tenant_ids = await self._tenant_ids()
        skipped: Dict[str, str] = {}

        agent_result = await self.router.aggregate(
            "SELECT ai_provider, is_active, COUNT(*) AS count FROM agents GROUP BY ai_provider, is_active",
            tenant_ids=tenant_ids,
        )
        skipped.update(agent_result.skipped)

        agents: Dict[str, Any] = {"total": 0, "active": 0, "by_provider": {}}
        for row in agent_result.rows:
            count = int(row["count"])
            agents["total"] += count
            if row["is_active"]:
                agents["active"] += count
            provider = row["ai_provider"]
            agents["by_provider"][provider] = agents["by_provider"].get(provider, 0) + count

        conversation_result = await self.router.aggregate(
            "SELECT status, channel_type, COUNT(*) AS count, "
            "COUNT(satisfaction_rating) AS rated, SUM(satisfaction_rating) AS rating_sum "
            "FROM conversations GROUP BY status, channel_type",
            tenant_ids=tenant_ids,
        )
        skipped.update(conversation_result.skipped)

        conversations: Dict[str, Any] = {"total": 0, "by_status": {}, "by_channel": {}, "avg_satisfaction": None}
        rated = 0
        rating_sum = 0.0
        for row in conversation_result.rows:
            count = int(row["count"])
            conversations["total"] += count
            by_status = conversations["by_status"]
            by_status[row["status"]] = by_status.get(row["status"], 0) + count
            by_channel = conversations["by_channel"]
            by_channel[row["channel_type"]] = by_channel.get(row["channel_type"], 0) + count
            rated += int(row["rated"] or 0)
            rating_sum += float(row["rating_sum"] or 0)
        if rated:
            conversations["avg_satisfaction"] = round(rating_sum / rated, 2)

        message_result = await self.router.aggregate(
            "SELECT COUNT(*) AS count FROM messages m WHERE m.timestamp >= :since",
            {"since": datetime.utcnow() - timedelta(hours=24)},
            tenant_ids=tenant_ids,
        )
        skipped.update(message_result.skipped)

        await self.audit.log_aggregation_skips("dashboard", skipped)

        return {
            "users": users,
            "plans": plans,
            "unresolved_alerts": alerts,
            "agents": agents,
            "conversations": conversations,
            "messages_last_24h": sum(int(row["count"]) for row in message_result.rows),
            "tenants": {
                "active": len(tenant_ids),
                "reporting": len(tenant_ids) - len(skipped),
                "cached_stores": len(self.router.cached_tenant_ids()),
            },
            "skipped_tenants": skipped,
            "generated_at": datetime.utcnow().isoformat(),
        }

    # ==================== Cross-tenant listings ====================

    async def get_all_agents(
        self,
        is_active: Optional[bool] = None,
        ai_provider: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """
        Get agents from every tenant store with their owner.

        Filters are pushed into each store; ordering and pagination happen
        after the merge.
        """
        conditions = []
        params: Dict[str, Any] = {}
        if is_active is not None:
            conditions.append("is_active = :is_active")
            params["is_active"] = is_active
        if ai_provider:
            conditions.append("ai_provider = :ai_provider")
            params["ai_provider"] = ai_provider
        if search:
            conditions.append("(name LIKE :search OR description LIKE :search)")
            params["search"] = f"%{search}%"

        query = (
            "SELECT id, name, description, personality, ai_provider, model, is_active, created_at "
            "FROM agents"
        )
        if conditions:
            query += " WHERE " + " AND ".join(conditions)

        result = await self.router.aggregate(query, params, tenant_ids=await self._tenant_ids())
        owners = await self._owners()

        agents = []
        for row in result.rows:
            agent = _plain_row(row)
            agent["is_active"] = bool(agent["is_active"])
            owner = owners.get(row["tenant_id"], {})
            agent["owner_name"] = owner.get("name")
            agent["owner_email"] = owner.get("email")
            agent["owner_company"] = owner.get("company")
            agents.append(agent)

        agents.sort(key=lambda a: str(a["created_at"] or ""), reverse=True)
        await self.audit.log_aggregation_skips("all_agents", result.skipped)

        page = _paginate(agents, limit, offset)
        return {
            "agents": page.pop("items"),
            **page,
            "skipped_tenants": result.skipped,
        }

    async def get_all_conversations(
        self,
        status: Optional[str] = None,
        channel_type: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """
        Get conversations from every tenant store, newest first.
        """
        conditions = []
        params: Dict[str, Any] = {}
        if status:
            conditions.append("c.status = :status")
            params["status"] = status
        if channel_type:
            conditions.append("c.channel_type = :channel_type")
            params["channel_type"] = channel_type

        query = (
            "SELECT c.id, c.agent_id, a.name AS agent_name, c.customer_name, c.customer_phone, "
            "c.channel_type, c.status, c.priority, c.satisfaction_rating, c.start_time, c.end_time, "
            "c.created_at "
            "FROM conversations c LEFT JOIN agents a ON a.id = c.agent_id"
        )
        if conditions:
            query += " WHERE " + " AND ".join(conditions)

        result = await self.router.aggregate(query, params, tenant_ids=await self._tenant_ids())
        owners = await self._owners()

        conversations = []
        for row in result.rows:
            conversation = _plain_row(row)
            conversation["owner_name"] = owners.get(row["tenant_id"], {}).get("name")
            conversations.append(conversation)

        conversations.sort(key=lambda c: str(c["created_at"] or ""), reverse=True)
        await self.audit.log_aggregation_skips("all_conversations", result.skipped)

        page = _paginate(conversations, limit, offset)
        return {
            "conversations": page.pop("items"),
            **page,
            "skipped_tenants": result.skipped,
        }

    # ==================== Tenant stores ====================

    async def get_store_overview(self) -> Dict[str, Any]:
        """Every client tenant with its store name and pool state"""
        tenants = await self.router.route_main_query(
            "SELECT id, name, email, status FROM users WHERE role = :role ORDER BY id",
            {"role": UserRole.CLIENT.value},
        )
        stats = self.router.stats()
        cached = {store["tenant_id"]: store for store in stats["stores"]}

        items = []
        for tenant in tenants:
            tid = str(tenant["id"])
            store = cached.get(tid)
            items.append({
                "tenant_id": tid,
                "name": tenant["name"],
                "email": tenant["email"],
                "status": tenant["status"],
                "store_name": self.router.store_name_for(tid),
                "cached": store is not None,
                "last_used": store["last_used"] if store else None,
                "pool_status": store["pool_status"] if store else None,
            })

        return {
            "backend": stats["backend"],
            "cached_stores": stats["cached_stores"],
            "provisioning": stats["provisioning"],
            "tenants": items,
        }

    async def cleanup_idle_stores(self, max_idle_seconds: Optional[int] = None) -> List[str]:
        """Close pools of tenants that have been idle too long"""
        evicted = await self.router.cleanup_idle(max_idle_seconds)
        if evicted:
            logger.info(f"Admin cleanup evicted {len(evicted)} idle tenant stores")
            await self.audit.log_action(
                action="tenant.pools_evicted",
                resource_type="tenant_store",
                details={"tenant_ids": evicted},
            )
        return evicted
