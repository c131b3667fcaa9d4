"""
Database Module
Handles database connections and operations

This module provides two kinds of connection:
1. Registry Database - shared store with users, audit logs, alerts, settings
2. Tenant Database Router - one isolated store per client user, created on demand
"""

from agentdesk.database.exceptions import (
    TenantDatabaseError,
    InvalidTenantIdError,
    ProvisioningError,
    QueryTimeoutError,
    QueryError,
    RegistryError,
    RouterClosedError,
)

from agentdesk.database.registry_connection import RegistryDatabaseManager

from agentdesk.database.tenant_connection import (
    TenantDatabaseRouter,
    TenantStoreHandle,
    ExecutionResult,
    AggregateResult,
)

from agentdesk.database.store_dialects import (
    build_store_name,
    get_store_dialect,
    normalize_tenant_id,
)

__all__ = [
    # Errors
    "TenantDatabaseError",
    "InvalidTenantIdError",
    "ProvisioningError",
    "QueryTimeoutError",
    "QueryError",
    "RegistryError",
    "RouterClosedError",

    # Registry database
    "RegistryDatabaseManager",

    # Tenant stores
    "TenantDatabaseRouter",
    "TenantStoreHandle",
    "ExecutionResult",
    "AggregateResult",
    "build_store_name",
    "get_store_dialect",
    "normalize_tenant_id",
]
