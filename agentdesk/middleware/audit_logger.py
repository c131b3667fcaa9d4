"""
Audit Logger for Security and Compliance
Logs provisioning and administrative actions to loguru and the registry
"""

import json
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from loguru import logger

from agentdesk.database.exceptions import RegistryError
from agentdesk.database.registry_connection import RegistryDatabaseManager
from agentdesk.models.registry import AuditLog


audit_log = logger.bind(AUDIT=True)


class AuditLogger:
    """
    Audit logger for tenant lifecycle and admin actions

    Every entry goes to the loguru audit sink. When a registry is given the
    entry is also stored in ``audit_logs``; storage failures are logged and
    never fail the calling operation.

    Example:
        audit = AuditLogger(registry)
        await audit.log_action(
            action="tenant.provisioned",
            resource_type="tenant_store",
            resource_id="42",
            details={"store_name": "tenant_store_42"},
        )
    """

    def __init__(self, registry: Optional[RegistryDatabaseManager] = None):
        self._registry = registry

    async def log_action(
        self,
        action: str,
        user_id: Optional[int] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        success: bool = True,
    ) -> None:
        """
        Record an audited action

        Args:
            action: Dotted action name (e.g. "tenant.deleted")
            user_id: Registry user performing the action
            resource_type: Kind of resource touched
            resource_id: Identifier of the resource
            old_values: State before the change
            new_values: State after the change
            details: Free-form context
            success: Whether the action succeeded
        """
        entry = {
            "event_type": "ADMIN_ACTION",
            "timestamp": datetime.utcnow().isoformat(),
            "action": action,
            "user_id": user_id,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "success": success,
            "details": details,
        }

        if success:
            audit_log.info(f"[AUDIT] {json.dumps(entry, default=str)}")
        else:
            audit_log.warning(f"[AUDIT] {json.dumps(entry, default=str)}")

        if self._registry is None or not self._registry.is_initialized:
            return

        try:
            async with self._registry.session_scope() as session:
                session.add(AuditLog(
                    user_id=user_id,
                    action=action,
                    resource_type=resource_type,
                    resource_id=resource_id,
                    old_values=old_values,
                    new_values=new_values,
                    details=json.dumps(details, default=str) if details else None,
                    ip_address=ip_address,
                    user_agent=user_agent,
                ))
        except (SQLAlchemyError, RegistryError) as e:
            logger.error(f"Failed to persist audit entry '{action}': {e}")

    async def log_aggregation_skips(self, operation: str, skipped: Dict[str, str]) -> None:
        """Record tenants left out of a cross-tenant admin query"""
        if not skipped:
            return
        await self.log_action(
            action="admin.aggregate.partial",
            resource_type="tenant_store",
            details={"operation": operation, "skipped": skipped},
            success=False,
        )
