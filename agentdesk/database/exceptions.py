"""
Database Exception Classes

Errors raised by the registry and the per-tenant store router.
Each carries the tenant id (when there is one) for diagnostics.
"""

from typing import Optional


class TenantDatabaseError(Exception):
    """Base exception for tenant store operations"""

    def __init__(
        self,
        message: str,
        tenant_id: Optional[str] = None,
        details: dict = None
    ):
        self.message = message
        self.tenant_id = tenant_id
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.tenant_id is not None:
            return f"[tenant {self.tenant_id}] {self.message}"
        return self.message


class InvalidTenantIdError(TenantDatabaseError):
    """Raised when a tenant id cannot be used to address a store"""

    def __init__(self, tenant_id, details: dict = None):
        super().__init__(
            f"Invalid tenant id: {tenant_id!r}",
            tenant_id=None,
            details=details,
        )
        self.rejected_id = tenant_id


class ProvisioningError(TenantDatabaseError):
    """Raised when creating a tenant store, its pool, or its schema fails"""

    def __init__(self, tenant_id: str, cause: BaseException, details: dict = None):
        super().__init__(
            f"Provisioning failed: {cause}",
            tenant_id=tenant_id,
            details=details,
        )
        self.cause = cause


class QueryTimeoutError(TenantDatabaseError, TimeoutError):
    """Raised when a store call exceeds its deadline"""

    def __init__(self, tenant_id: Optional[str], timeout: float, details: dict = None):
        super().__init__(
            f"Query timed out after {timeout} seconds",
            tenant_id=tenant_id,
            details=details,
        )
        self.timeout = timeout


class QueryError(TenantDatabaseError):
    """Raised when a statement fails against an existing store"""

    def __init__(
        self,
        tenant_id: Optional[str],
        cause: BaseException,
        query: Optional[str] = None,
        details: dict = None
    ):
        super().__init__(
            f"Query failed: {cause}",
            tenant_id=tenant_id,
            details=details,
        )
        self.cause = cause
        self.query = query


class RegistryError(TenantDatabaseError):
    """Raised when the shared registry database is unusable"""

    def __init__(self, message: str = "Registry database error", details: dict = None):
        super().__init__(message, details=details)


class RouterClosedError(TenantDatabaseError):
    """Raised when the router is used after shutdown"""

    def __init__(self, tenant_id: Optional[str] = None):
        super().__init__("Tenant database router is closed", tenant_id=tenant_id)
