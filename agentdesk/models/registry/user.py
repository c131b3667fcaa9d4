"""
User Model
A platform account. Every client user is a tenant with its own store.
"""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, String, Enum as SAEnum, true

from agentdesk.models.registry.base import RegistryBase


class UserRole(str, Enum):
    """Platform role"""
    ADMIN = "admin"
    CLIENT = "client"


class UserPlan(str, Enum):
    """Subscription plan levels"""
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class TenantStatus(str, Enum):
    """Lifecycle of a tenant's store as recorded in the registry"""
    PROVISIONING = "provisioning"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class User(RegistryBase):
    """
    User Model - registry row for admins and client tenants.

    The integer ``id`` is the tenant id used to address the client's store.
    """

    __tablename__ = "users"

    # ==================== Identity ====================
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)

    # ==================== Account ====================
    role = Column(
        SAEnum(*[r.value for r in UserRole], name="user_role"),
        nullable=False,
        default=UserRole.CLIENT.value,
        server_default=UserRole.CLIENT.value,
    )
    plan = Column(
        SAEnum(*[p.value for p in UserPlan], name="user_plan"),
        nullable=False,
        default=UserPlan.FREE.value,
        server_default=UserPlan.FREE.value,
    )
    status = Column(
        SAEnum(*[s.value for s in TenantStatus], name="tenant_status"),
        nullable=False,
        default=TenantStatus.PROVISIONING.value,
        server_default=TenantStatus.PROVISIONING.value,
        index=True,
    )
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())

    # ==================== Contact ====================
    company = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    avatar = Column(String(500), nullable=True)

    last_login = Column(DateTime, nullable=True)

    @property
    def is_tenant(self) -> bool:
        """Only client users own a tenant store"""
        return self.role == UserRole.CLIENT.value

    def to_dict(self, exclude: list = None) -> dict:
        # Never expose the password hash
        return super().to_dict(exclude=(exclude or []) + ["password"])
