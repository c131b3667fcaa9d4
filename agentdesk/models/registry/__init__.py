"""
Registry Models Package
SQLAlchemy ORM models for the shared registry database
"""

from agentdesk.models.registry.base import RegistryBase
from agentdesk.models.registry.user import User, UserRole, UserPlan, TenantStatus
from agentdesk.models.registry.audit_log import AuditLog
from agentdesk.models.registry.alert import Alert, AlertSeverity
from agentdesk.models.registry.system_setting import SystemSetting

__all__ = [
    "RegistryBase",
    "User",
    "UserRole",
    "UserPlan",
    "TenantStatus",
    "AuditLog",
    "Alert",
    "AlertSeverity",
    "SystemSetting",
]
