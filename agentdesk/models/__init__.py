"""
Models Package
Registry (shared) models and tenant-store models live on separate metadata
so each can be created independently.
"""

from agentdesk.models.registry import RegistryBase
from agentdesk.models.tenant import TenantBase

__all__ = ["RegistryBase", "TenantBase"]
