"""
Tenant Management Service
Registry users and the lifecycle of their tenant stores
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from loguru import logger

from agentdesk.config import settings
from agentdesk.database.exceptions import ProvisioningError
from agentdesk.database.registry_connection import RegistryDatabaseManager
from agentdesk.database.tenant_connection import TenantDatabaseRouter, TenantStoreHandle
from agentdesk.middleware.audit_logger import AuditLogger
from agentdesk.models.registry import User, UserRole, UserPlan, TenantStatus
from agentdesk.security.jwt_handler import create_access_token
from agentdesk.security.password import hash_password, password_problem, verify_password


class TenantServiceError(Exception):
    """Custom exception for tenant service errors"""
    pass


class UserNotFoundError(TenantServiceError):
    """Raised when a registry user does not exist"""
    pass


class DuplicateEmailError(TenantServiceError):
    """Raised when an email is already registered"""
    pass


class AuthenticationError(TenantServiceError):
    """Raised when login fails"""
    pass


# =============================================================================
# Registry users
# =============================================================================

async def create_tenant_user(
    registry: RegistryDatabaseManager,
    router: TenantDatabaseRouter,
    audit: AuditLogger,
    name: str,
    email: str,
    password: str,
    role: str = UserRole.CLIENT.value,
    plan: str = UserPlan.FREE.value,
    company: Optional[str] = None,
    phone: Optional[str] = None,
    created_by: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Register a user. Client users get their tenant store provisioned.

    The user is stored with status ``provisioning`` first and switched to
    ``active`` once the store is ready. If provisioning fails the user stays
    in ``provisioning`` and the ProvisioningError propagates; calling
    provision_tenant later retries.

    Returns:
        The created user as a dict

    Raises:
        TenantServiceError: If the password is unacceptable
        DuplicateEmailError: If the email is taken
        ProvisioningError: If the tenant store cannot be created
    """
    problem = password_problem(password)
    if problem:
        raise TenantServiceError(problem)

    email = email.strip().lower()

    async with registry.session_scope() as session:
        existing = await session.scalar(select(User.id).where(User.email == email))
        if existing is not None:
            raise DuplicateEmailError(f"Email already registered: {email}")

        user = User(
            name=name,
            email=email,
            password=hash_password(password),
            role=role,
            plan=plan,
            company=company,
            phone=phone,
            status=(
                TenantStatus.PROVISIONING.value
                if role == UserRole.CLIENT.value
                else TenantStatus.ACTIVE.value
            ),
        )
        session.add(user)
        await session.flush()
        user_id = user.id

    logger.info(f"Created {role} user {user_id} ({email})")
    await audit.log_action(
        action="user.created",
        user_id=created_by,
        resource_type="user",
        resource_id=str(user_id),
        new_values={"email": email, "role": role, "plan": plan},
    )

    if role == UserRole.CLIENT.value:
        await provision_tenant(registry, router, audit, user_id)

    return await get_user(registry, user_id)


async def get_user(registry: RegistryDatabaseManager, user_id: int) -> Dict[str, Any]:
    """
    Raises:
        UserNotFoundError: If no such user
    """
    async with registry.session_scope() as session:
        user = await session.get(User, int(user_id))
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user.to_dict()


async def list_users(
    registry: RegistryDatabaseManager,
    role: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Returns:
        (users, total) for the given filters
    """
    stmt = select(User)
    count_stmt = select(func.count(User.id))
    if role:
        stmt = stmt.where(User.role == role)
        count_stmt = count_stmt.where(User.role == role)
    if status:
        stmt = stmt.where(User.status == status)
        count_stmt = count_stmt.where(User.status == status)

    async with registry.session_scope() as session:
        total = await session.scalar(count_stmt)
        result = await session.execute(stmt.order_by(User.created_at.desc(), User.id.desc()).offset(offset).limit(limit))
        users = [user.to_dict() for user in result.scalars().all()]

    return users, total or 0


async def _set_status(registry: RegistryDatabaseManager, user_id: int, status: str) -> str:
    """Update a user's status and return the previous one"""
    async with registry.session_scope() as session:
        user = await session.get(User, int(user_id))
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        previous = user.status
        user.status = status
        return previous


# =============================================================================
# Tenant store lifecycle
# =============================================================================

async def provision_tenant(
    registry: RegistryDatabaseManager,
    router: TenantDatabaseRouter,
    audit: AuditLogger,
    user_id: int,
) -> TenantStoreHandle:
    """
    Provision (or re-check) a client's store and mark the tenant active.

    Safe to call repeatedly: store creation and schema bootstrap are
    idempotent.

    Raises:
        UserNotFoundError: If the user does not exist
        TenantServiceError: If the user is not a client
        ProvisioningError: If the store cannot be created
    """
    user = await get_user(registry, user_id)
    if user["role"] != UserRole.CLIENT.value:
        raise TenantServiceError(f"User {user_id} is not a client and has no tenant store")

    try:
        handle = await router.get_store_for(user_id)
    except ProvisioningError as e:
        await audit.log_action(
            action="tenant.provisioning_failed",
            resource_type="tenant_store",
            resource_id=str(user_id),
            details={"error": str(e.cause)},
            success=False,
        )
        raise

    if user["status"] == TenantStatus.PROVISIONING.value:
        await _set_status(registry, user_id, TenantStatus.ACTIVE.value)
        await audit.log_action(
            action="tenant.provisioned",
            resource_type="tenant_store",
            resource_id=str(user_id),
            details={"store_name": handle.store_name},
        )

    return handle


async def suspend_tenant(
    registry: RegistryDatabaseManager,
    router: TenantDatabaseRouter,
    audit: AuditLogger,
    user_id: int,
    performed_by: Optional[int] = None,
) -> Dict[str, Any]:
    """Suspend a tenant and release its pool; the store is kept"""
    previous = await _set_status(registry, user_id, TenantStatus.SUSPENDED.value)
    await router.evict(user_id)

    await audit.log_action(
        action="tenant.suspended",
        user_id=performed_by,
        resource_type="user",
        resource_id=str(user_id),
        old_values={"status": previous},
        new_values={"status": TenantStatus.SUSPENDED.value},
    )
    return await get_user(registry, user_id)


async def activate_tenant(
    registry: RegistryDatabaseManager,
    audit: AuditLogger,
    user_id: int,
    performed_by: Optional[int] = None,
) -> Dict[str, Any]:
    """Re-activate a suspended tenant; its pool reopens on next access"""
    previous = await _set_status(registry, user_id, TenantStatus.ACTIVE.value)

    await audit.log_action(
        action="tenant.activated",
        user_id=performed_by,
        resource_type="user",
        resource_id=str(user_id),
        old_values={"status": previous},
        new_values={"status": TenantStatus.ACTIVE.value},
    )
    return await get_user(registry, user_id)


async def delete_tenant_user(
    registry: RegistryDatabaseManager,
    router: TenantDatabaseRouter,
    audit: AuditLogger,
    user_id: int,
    drop_store: Optional[bool] = None,
    performed_by: Optional[int] = None,
) -> None:
    """
    Delete a user. A client's store is dropped or only evicted depending on
    ``drop_store`` (default: settings.drop_store_on_delete).

    The store is handled before the registry row is removed. If dropping
    the store fails the user is kept, so the delete can be retried.

    Raises:
        UserNotFoundError: If no such user
        ProvisioningError: If the store cannot be dropped
    """
    if drop_store is None:
        drop_store = settings.drop_store_on_delete

    user = await get_user(registry, user_id)
    is_tenant = user["role"] == UserRole.CLIENT.value
    email = user["email"]

    if is_tenant:
        if drop_store:
            try:
                await router.drop_store(user_id)
            except ProvisioningError as e:
                await audit.log_action(
                    action="user.delete_failed",
                    user_id=performed_by,
                    resource_type="tenant_store",
                    resource_id=str(user_id),
                    details={"error": str(e.cause), "operation": "drop"},
                    success=False,
                )
                raise
        else:
            await router.evict(user_id)

    async with registry.session_scope() as session:
        row = await session.get(User, int(user_id))
        if row is None:
            raise UserNotFoundError(f"User {user_id} not found")
        await session.delete(row)

    logger.info(f"Deleted user {user_id} (store dropped: {bool(is_tenant and drop_store)})")
    await audit.log_action(
        action="user.deleted",
        user_id=performed_by,
        resource_type="user",
        resource_id=str(user_id),
        old_values={"email": email},
        details={"store_dropped": bool(is_tenant and drop_store)},
    )


# =============================================================================
# Authentication
# =============================================================================

async def authenticate_user(
    registry: RegistryDatabaseManager,
    email: str,
    password: str,
) -> Tuple[Dict[str, Any], str]:
    """
    Check credentials and issue an access token.

    Returns:
        (user dict, access token)

    Raises:
        AuthenticationError: On bad credentials or an unusable account
    """
    email = email.strip().lower()

    async with registry.session_scope() as session:
        user = await session.scalar(select(User).where(User.email == email))

        if user is None or not verify_password(password, user.password):
            raise AuthenticationError("Invalid email or password")

        if not user.is_active or user.status == TenantStatus.SUSPENDED.value:
            raise AuthenticationError("Account is disabled")

        user.last_login = datetime.utcnow()
        user_data = user.to_dict()

    token = create_access_token(
        user_id=user_data["id"],
        email=user_data["email"],
        role=user_data["role"],
    )
    logger.info(f"User {user_data['id']} logged in")
    return user_data, token
